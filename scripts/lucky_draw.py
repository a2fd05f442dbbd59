"""Operator command line for running draws against the configured database.

Examples::

    python scripts/lucky_draw.py draw 3
    python scripts/lucky_draw.py redraw 17
    python scripts/lucky_draw.py results
    python scripts/lucky_draw.py reset --yes
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from luckydraw.broadcast import broadcaster_from_env
from luckydraw.db.engine import get_sessionmaker, make_engine
from luckydraw.lucky_draw import LuckyDrawEngine, LuckyDrawError, reset_pool


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Lucky draw operator tool")
    parser.add_argument("--db-url", default=None, help="Override DB_URL")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    draw = sub.add_parser("draw", help="Draw a winner for a prize")
    draw.add_argument("prize_id", type=int)
    draw.add_argument("--key", default=None, help="Idempotency key for safe retries")

    redraw = sub.add_parser("redraw", help="Void an outcome and draw a replacement")
    redraw.add_argument("outcome_id", type=int)

    sub.add_parser("results", help="List current winners, newest first")
    sub.add_parser("history", help="List every outcome including voided ones")

    reset = sub.add_parser("reset", help="Restore all stock and purge all outcomes")
    reset.add_argument("--yes", action="store_true", help="Confirm the irreversible reset")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    engine = make_engine(args.db_url)
    Session = get_sessionmaker(engine)
    draws = LuckyDrawEngine(Session, broadcaster=broadcaster_from_env())

    try:
        if args.command == "draw":
            payload = draws.draw(args.prize_id, idempotency_key=args.key).to_json()
        elif args.command == "redraw":
            payload = draws.redraw(args.outcome_id).to_json()
        elif args.command == "results":
            payload = [view.to_json() for view in draws.list_outcomes()]
        elif args.command == "history":
            payload = [view.to_json() for view in draws.list_history()]
        else:
            if not args.yes:
                print("Refusing to reset without --yes", file=sys.stderr)
                return 2
            summary = reset_pool(Session)
            payload = {"prizes": summary.prizes, "outcomes_purged": summary.outcomes_purged}
    except LuckyDrawError as exc:
        print(
            json.dumps({"error": exc.code, "message": str(exc), "retryable": exc.retryable}),
            file=sys.stderr,
        )
        return 1
    finally:
        engine.dispose()

    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
