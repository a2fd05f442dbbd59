"""Migrate the configured database and confirm the lucky draw schema.

    python scripts/init_db.py                 # upgrade to head, then report
    python scripts/init_db.py --check-drift   # compare live schema with models
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from alembic import command
from alembic.autogenerate import api as ag_api
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import func, inspect, select

from luckydraw.db.engine import get_sessionmaker, make_engine
from luckydraw.models import Base, Outcome, Participant, Prize

logger = logging.getLogger(__name__)

LIVE_WINNER_INDEX = "uq_lucky_draw_outcomes_live_participant"


def upgrade_db(database_url: str | None = None, target_revision: str = "head") -> None:
    """Apply Alembic migrations up to ``target_revision``."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    if database_url:
        alembic_cfg.cmd_opts = argparse.Namespace(x=[f"db_url={database_url}"])
    command.upgrade(alembic_cfg, target_revision)


def report(database_url: str | None = None) -> int:
    """Print row counts and fail if the one-live-win index is missing."""
    engine = make_engine(database_url)
    try:
        insp = inspect(engine)
        indexes = {ix["name"] for ix in insp.get_indexes(Outcome.__tablename__)}
        if LIVE_WINNER_INDEX not in indexes:
            logger.error(f"Index {LIVE_WINNER_INDEX} is missing; duplicate winners are possible")
            return 1

        Session = get_sessionmaker(engine)
        with Session() as session:
            prizes = session.scalar(select(func.count(Prize.id)))
            units = session.scalar(select(func.coalesce(func.sum(Prize.remaining), 0)))
            participants = session.scalar(select(func.count(Participant.id)))
            live = len(Outcome.live_participant_ids(session))
    finally:
        engine.dispose()

    print(
        f"{prizes} prizes ({units} units left), {participants} participants, "
        f"{live} current winners"
    )
    return 0


def _print_ops(ops, indent: int = 0) -> None:
    prefix = "  " * indent
    for op in ops:
        print(f"{prefix}- {op}")
        sub_ops = getattr(op, "ops", None)
        if sub_ops:
            _print_ops(sub_ops, indent + 1)


def check_drift(database_url: str | None = None) -> int:
    """Compare the live schema with the ORM models; 1 on drift, 2 on error."""
    engine = make_engine(database_url)
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            migration = ag_api.produce_migrations(context, Base.metadata)
    except Exception as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()

    upgrade_ops = migration.upgrade_ops
    if upgrade_ops is None or upgrade_ops.is_empty():
        print(f"Schema drift check: OK for {url_display}.")
        return 0
    print(f"Schema drift check: FAILED for {url_display}. Differences detected:")
    _print_ops(upgrade_ops.ops or [])
    return 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--db-url", default=None, help="Override DB_URL")
    parser.add_argument(
        "--check-drift", action="store_true", help="Only compare schema with models"
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    if args.check_drift:
        return check_drift(args.db_url)
    upgrade_db(args.db_url)
    return report(args.db_url)


if __name__ == "__main__":
    raise SystemExit(main())
