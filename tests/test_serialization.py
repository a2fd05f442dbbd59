import json
import random
import unittest
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from luckydraw.lucky_draw import LuckyDrawEngine
from luckydraw.models import Base, Outcome, Participant, Prize, PrizeCategory


class SerializationTestCase(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def test_prize_to_json(self):
        now = datetime.now(timezone.utc)
        with self.Session() as session:
            prize = Prize(
                name="Smartphone 256GB",
                category=PrizeCategory.GRAND,
                stock=2,
                remaining=1,
                created_at=now,
                updated_at=now,
            )
            session.add(prize)
            session.flush()

            d = prize.to_json()
            self.assertEqual(d["name"], "Smartphone 256GB")
            self.assertEqual(d["category"], "GRAND")
            self.assertEqual(d["stock"], 2)
            self.assertEqual(d["remaining"], 1)
            self.assertTrue(d["is_active"])
            self.assertEqual(d["created_at"], now.isoformat())
            # Should be JSON serializable
            json.dumps(d)

    def test_participant_to_json(self):
        with self.Session() as session:
            p = Participant(
                employee_id="E900",
                full_name="Wichai",
                department="Sales",
                dietary="None",
                checked_in=True,
            )
            session.add(p)
            session.flush()

            d = p.to_json()
            self.assertEqual(d["employee_id"], "E900")
            self.assertIsNone(d["dietary"])
            self.assertTrue(d["checked_in"])
            self.assertIsInstance(d["checked_in_at"], str)
            self.assertIsInstance(d["registered_at"], str)
            json.dumps(d)

    def test_outcome_and_view_to_json(self):
        with self.Session.begin() as session:
            prize = Prize(name="Gold 1 salung", category="big", stock=1)
            session.add_all(
                [prize, Participant(employee_id="E1", full_name="Anan", department="IT")]
            )
            session.flush()
            prize_id = prize.id

        draws = LuckyDrawEngine(self.Session, rng=random.Random(3))
        view = draws.draw(prize_id)
        d = view.to_json()
        self.assertEqual(
            set(d),
            {
                "id",
                "prize_id",
                "participant_id",
                "winner_name",
                "employee_id",
                "department",
                "prize_name",
                "prize_category",
                "is_redraw",
                "created_at",
                "replaces_outcome_id",
            },
        )
        self.assertEqual(d["winner_name"], "Anan")
        self.assertEqual(d["prize_category"], "BIG")
        self.assertFalse(d["is_redraw"])
        self.assertTrue(d["created_at"].endswith("+00:00"))
        json.dumps(d)

        with self.Session() as session:
            raw = session.get(Outcome, view.id).to_json()
        self.assertEqual(raw["prize_id"], prize_id)
        self.assertIsNone(raw["voided_at"])
        self.assertEqual(raw["created_at"], d["created_at"])


if __name__ == "__main__":
    unittest.main()
