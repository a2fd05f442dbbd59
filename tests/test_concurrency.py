"""Concurrent draws against a file backed SQLite database.

An in-memory database is bound to a single connection, so these tests use a
temporary file and the engine factory's busy timeout to let writers queue.
"""

from __future__ import annotations

import os
import random
import tempfile
import threading
import unittest
from collections import Counter
from datetime import datetime, timezone
from unittest.mock import patch

from sqlalchemy import select, update

from luckydraw.db.engine import get_sessionmaker, make_engine
from luckydraw.lucky_draw import (
    ConcurrencyError,
    DuplicateWinner,
    LuckyDrawEngine,
    NoCandidates,
    PrizeExhausted,
    StockRaceLost,
)
from luckydraw.models import Base, Outcome, Participant, Prize, PrizeCategory


class FileDatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        path = os.path.join(self._tmpdir.name, "draws.db")
        self.engine = make_engine(f"sqlite:///{path}", busy_timeout=30)
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)

    def tearDown(self) -> None:
        self.engine.dispose()
        self._tmpdir.cleanup()

    def _seed(self, prizes, participant_count: int) -> list[int]:
        with self.Session.begin() as session:
            rows = [Prize(name=name, category=category, stock=stock) for name, category, stock in prizes]
            session.add_all(rows)
            session.add_all(
                [
                    Participant(employee_id=f"E{n:03d}", full_name=f"Employee {n}")
                    for n in range(participant_count)
                ]
            )
            session.flush()
            return [p.id for p in rows]

    def _live_outcomes(self) -> list[Outcome]:
        with self.Session() as session:
            stmt = select(Outcome).where(Outcome.is_redraw.is_(False))
            return list(session.scalars(stmt).all())

    def _remaining(self, prize_id: int) -> int:
        with self.Session() as session:
            return session.scalar(select(Prize.remaining).where(Prize.id == prize_id))


class ParallelDrawTests(FileDatabaseTestCase):
    def _run_workers(self, draws: LuckyDrawEngine, prize_ids: list[int], workers: int):
        """Each worker draws until its prize is exhausted or nobody is left.

        Concurrency errors are retried, as an operator client would.
        """

        barrier = threading.Barrier(workers)
        lock = threading.Lock()
        results: list = []
        terminal: list = []
        retries: Counter = Counter()
        unexpected: list = []

        def worker(index: int) -> None:
            prize_id = prize_ids[index % len(prize_ids)]
            barrier.wait()
            while True:
                try:
                    view = draws.draw(prize_id)
                except ConcurrencyError as exc:
                    with lock:
                        retries[type(exc).__name__] += 1
                    continue
                except (PrizeExhausted, NoCandidates) as exc:
                    with lock:
                        terminal.append(exc)
                    return
                except Exception as exc:  # surfaced through the assertion below
                    with lock:
                        unexpected.append(exc)
                    return
                with lock:
                    results.append(view)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=120)
        self.assertFalse(any(t.is_alive() for t in threads))
        self.assertEqual(unexpected, [])
        return results, terminal, retries

    def test_stock_never_oversold(self):
        stock = 3
        (prize_id,) = self._seed([("Air fryer", PrizeCategory.SMALL, stock)], 40)
        draws = LuckyDrawEngine(self.Session, rng=random.Random(99))

        results, terminal, _retries = self._run_workers(draws, [prize_id], workers=10)

        self.assertEqual(len(results), stock)
        self.assertEqual(len(terminal), 10)
        self.assertTrue(all(isinstance(exc, PrizeExhausted) for exc in terminal))
        self.assertEqual(self._remaining(prize_id), 0)
        live = self._live_outcomes()
        self.assertEqual(len(live), stock)
        self.assertEqual(len({o.participant_id for o in live}), stock)

    def test_no_participant_wins_twice(self):
        participants = 6
        prize_ids = self._seed(
            [
                ("Voucher", PrizeCategory.SMALL, 5),
                ("Speaker", PrizeCategory.MEDIUM, 5),
            ],
            participants,
        )
        draws = LuckyDrawEngine(self.Session, rng=random.Random(7))

        results, _terminal, _retries = self._run_workers(draws, prize_ids, workers=8)

        self.assertEqual(len(results), participants)
        live = self._live_outcomes()
        self.assertEqual(len(live), participants)
        self.assertEqual(len({o.participant_id for o in live}), participants)

        per_prize = Counter(o.prize_id for o in live)
        for prize_id in prize_ids:
            self.assertEqual(self._remaining(prize_id), 5 - per_prize[prize_id])


class InterleavedCommitTests(FileDatabaseTestCase):
    """Another writer commits between candidate selection and the decrement."""

    def _interleave(self, action):
        original = LuckyDrawEngine._eligible_candidates

        def eligible_then_interfere(session, prize, *, exclude=()):
            candidates = original(session, prize, exclude=exclude)
            with self.engine.begin() as conn:
                action(conn)
            return candidates

        return patch.object(
            LuckyDrawEngine, "_eligible_candidates", staticmethod(eligible_then_interfere)
        )

    def test_last_unit_taken_by_other_writer(self):
        (prize_id,) = self._seed([("Tablet", PrizeCategory.BIG, 1)], 3)
        draws = LuckyDrawEngine(self.Session)

        def take_last_unit(conn):
            conn.execute(update(Prize).where(Prize.id == prize_id).values(remaining=0))

        with self._interleave(take_last_unit):
            with self.assertRaises(StockRaceLost) as ctx:
                draws.draw(prize_id)

        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(self._live_outcomes(), [])
        self.assertEqual(self._remaining(prize_id), 0)
        with self.assertRaises(PrizeExhausted):
            draws.draw(prize_id)

    def test_winner_taken_by_other_writer(self):
        first_id, second_id = self._seed(
            [("Voucher", PrizeCategory.SMALL, 1), ("Camera", PrizeCategory.MEDIUM, 1)], 1
        )
        with self.Session() as session:
            participant_id = session.scalar(select(Participant.id))
        draws = LuckyDrawEngine(self.Session)

        def award_elsewhere(conn):
            conn.execute(update(Prize).where(Prize.id == first_id).values(remaining=0))
            conn.execute(
                Outcome.__table__.insert().values(
                    prize_id=first_id,
                    participant_id=participant_id,
                    is_redraw=False,
                    created_at=datetime.now(timezone.utc),
                )
            )

        with self._interleave(award_elsewhere):
            with self.assertLogs("luckydraw.lucky_draw.engine", level="WARNING"):
                with self.assertRaises(DuplicateWinner) as ctx:
                    draws.draw(second_id)

        self.assertEqual(ctx.exception.participant_id, participant_id)
        self.assertEqual(self._remaining(second_id), 1)
        live = self._live_outcomes()
        self.assertEqual([(o.prize_id, o.participant_id) for o in live], [(first_id, participant_id)])


if __name__ == "__main__":
    unittest.main()
