from datetime import datetime, timezone

from luckydraw.db.engine import get_sessionmaker, make_engine
from luckydraw.models import Base, Participant, Prize, PrizeCategory
from luckydraw.workflows import import_participants

PRIZES = [
    ("Cash 1,000", PrizeCategory.SMALL, 8),
    ("Air fryer", PrizeCategory.SMALL, 2),
    ("Portable speaker", PrizeCategory.SMALL, 3),
    ("Department store voucher", PrizeCategory.SMALL, 5),
    ("Robot vacuum", PrizeCategory.MEDIUM, 2),
    ("Instant camera", PrizeCategory.MEDIUM, 1),
    ("Gold 1 salung", PrizeCategory.BIG, 1),
    ("Tablet 128GB", PrizeCategory.BIG, 1),
    ("Smartphone 256GB", PrizeCategory.GRAND, 1),
    ("Gold 2 salung", PrizeCategory.GRAND, 1),
]

PARTICIPANTS = [
    {"EmployeeID": f"E{n:04d}", "Name": f"Employee {n}", "Department": dept, "Dietary": "None"}
    for n, dept in enumerate(
        ["Finance", "Sales", "IT", "HR", "Operations", "Marketing"] * 5, start=1
    )
]


def main() -> None:
    """Seed the development database with sample prizes and participants."""
    engine = make_engine()

    # Drop and recreate all tables for a clean slate.
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    now = datetime.now(timezone.utc)

    with Session.begin() as session:
        for name, category, stock in PRIZES:
            session.add(Prize(name=name, category=category, stock=stock, created_at=now))
        summary = import_participants(session, PARTICIPANTS)

        # Half of the room is already at the venue.
        session.flush()
        for participant in Participant.list_snapshot(session)[::2]:
            participant.toggle_check_in(now)

    print(
        f"Seeded {len(PRIZES)} prizes and {summary['created']} participants "
        f"({summary['skipped']} skipped)."
    )
    engine.dispose()


if __name__ == "__main__":
    main()
