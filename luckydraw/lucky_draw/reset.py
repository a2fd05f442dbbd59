"""Administrative pool operations. Not part of the draw path."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from ..models import Outcome, Prize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResetSummary:
    """Row counts touched by a pool operation."""

    prizes: int
    outcomes_purged: int


def reset_pool(session_factory: sessionmaker) -> ResetSummary:
    """Restore every prize to full stock and purge the outcome log.

    Both steps run in one transaction. This cannot be undone: voided
    outcomes are deleted along with the live ones.
    """

    with session_factory.begin() as session:
        purged = Outcome.purge(session)
        restored = Prize.restore_all_stock(session)

    logger.warning(f"Lucky draw pool reset: {restored} prizes restored, {purged} outcomes purged")
    return ResetSummary(prizes=restored, outcomes_purged=purged)


def delete_all_prizes(session_factory: sessionmaker) -> ResetSummary:
    """Delete every outcome and every prize in one transaction."""

    with session_factory.begin() as session:
        purged = Outcome.purge(session)
        removed = session.execute(
            delete(Prize).execution_options(synchronize_session=False)
        ).rowcount

    logger.warning(f"Deleted {removed} prizes and {purged} outcomes")
    return ResetSummary(prizes=removed, outcomes_purged=purged)


__all__ = ["ResetSummary", "reset_pool", "delete_all_prizes"]
