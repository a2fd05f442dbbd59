import random
import unittest
from collections import Counter
from dataclasses import dataclass

from luckydraw.lucky_draw import (
    NoCandidates,
    NoCheckedInParticipants,
    pick_winner,
    resolve_eligible,
)
from luckydraw.models import PrizeCategory


@dataclass
class Person:
    id: int
    checked_in: bool = False


class ResolveEligibleTests(unittest.TestCase):
    def setUp(self) -> None:
        self.people = [
            Person(1, checked_in=True),
            Person(2, checked_in=False),
            Person(3, checked_in=True),
            Person(4, checked_in=False),
        ]

    def test_lower_tiers_ignore_check_in(self):
        for category in (PrizeCategory.SMALL, PrizeCategory.MEDIUM, PrizeCategory.BIG):
            eligible = resolve_eligible(category, self.people, winner_ids=set())
            self.assertEqual([p.id for p in eligible], [1, 2, 3, 4])

    def test_grand_requires_check_in(self):
        eligible = resolve_eligible(PrizeCategory.GRAND, self.people, winner_ids=set())
        self.assertEqual([p.id for p in eligible], [1, 3])

    def test_existing_winners_are_removed(self):
        eligible = resolve_eligible(PrizeCategory.SMALL, self.people, winner_ids={2, 3})
        self.assertEqual([p.id for p in eligible], [1, 4])

    def test_exclude_removes_extra_ids(self):
        eligible = resolve_eligible(
            PrizeCategory.GRAND, self.people, winner_ids=set(), exclude={1}
        )
        self.assertEqual([p.id for p in eligible], [3])

    def test_empty_pool_for_grand_is_checked_in_error(self):
        with self.assertRaises(NoCheckedInParticipants) as ctx:
            resolve_eligible(PrizeCategory.GRAND, self.people, winner_ids={1, 3})
        self.assertEqual(ctx.exception.code, "no_checked_in_participants")

    def test_empty_pool_for_small_is_plain_no_candidates(self):
        with self.assertRaises(NoCandidates) as ctx:
            resolve_eligible(PrizeCategory.SMALL, [], winner_ids=set())
        self.assertNotIsInstance(ctx.exception, NoCheckedInParticipants)
        self.assertEqual(ctx.exception.code, "no_candidates")

    def test_grand_with_only_absent_participants(self):
        absent = [Person(7), Person(8)]
        with self.assertRaises(NoCheckedInParticipants):
            resolve_eligible(PrizeCategory.GRAND, absent, winner_ids=set())


class PickWinnerTests(unittest.TestCase):
    def test_single_candidate_always_wins(self):
        only = Person(42, checked_in=True)
        rng = random.Random(7)
        for _ in range(20):
            self.assertIs(pick_winner([only], rng), only)

    def test_empty_candidates_raise(self):
        with self.assertRaises(NoCandidates):
            pick_winner([], random.Random(0))

    def test_uses_rng_index(self):
        class FixedRng:
            def __init__(self, index):
                self.index = index
                self.calls = []

            def randrange(self, n):
                self.calls.append(n)
                return self.index

        candidates = [Person(i) for i in range(5)]
        rng = FixedRng(3)
        self.assertEqual(pick_winner(candidates, rng).id, 3)
        self.assertEqual(rng.calls, [5])

    def test_selection_is_roughly_uniform(self):
        candidates = [Person(i) for i in range(4)]
        rng = random.Random(2026)
        counts = Counter(pick_winner(candidates, rng).id for _ in range(4000))
        self.assertEqual(set(counts), {0, 1, 2, 3})
        for count in counts.values():
            # 1000 expected per candidate.
            self.assertGreater(count, 850)
            self.assertLess(count, 1150)


if __name__ == "__main__":
    unittest.main()
