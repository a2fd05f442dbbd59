"""Append-only log of lucky draw outcomes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    delete,
    select,
    text,
    update,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import ID_TYPE, Base
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .participant import Participant
    from .prize import Prize


class Outcome(Base):
    """One winner for one prize unit.

    Rows are never updated except to void them during a redraw. A voided row
    keeps ``is_redraw=True`` and stays in the table for history.
    """

    __tablename__ = "lucky_draw_outcomes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, index=True, autoincrement=True)
    """Primary key."""

    prize_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("prizes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    """Prize whose unit was awarded."""

    participant_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("participants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    """Winning participant."""

    is_redraw: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    """``True`` once the outcome has been voided by a redraw."""

    voided_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    """Timestamp of the redraw that voided this outcome."""

    replaces_outcome_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE,
        ForeignKey("lucky_draw_outcomes.id", ondelete="SET NULL"),
        nullable=True,
    )
    """Outcome superseded by this one, set on redraw results."""

    idempotency_key: Mapped[Optional[str]] = mapped_column(
        String(64), unique=True, nullable=True
    )
    """Caller supplied token used to replay a retried draw."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp when the winner was selected."""

    prize: Mapped["Prize"] = relationship(back_populates="outcomes")
    participant: Mapped["Participant"] = relationship(back_populates="outcomes")
    replaces: Mapped[Optional["Outcome"]] = relationship(
        "Outcome", remote_side=[id], foreign_keys=[replaces_outcome_id]
    )

    __table_args__ = (
        # A participant may hold at most one live outcome across the event.
        Index(
            "uq_lucky_draw_outcomes_live_participant",
            "participant_id",
            unique=True,
            sqlite_where=text("NOT is_redraw"),
            postgresql_where=text("NOT is_redraw"),
        ),
        Index("ix_lucky_draw_outcomes_live_created", "is_redraw", "created_at"),
    )

    def __init__(
        self,
        *,
        prize: Optional["Prize"] = None,
        prize_id: Optional[int] = None,
        participant: Optional["Participant"] = None,
        participant_id: Optional[int] = None,
        replaces: Optional["Outcome"] = None,
        idempotency_key: Optional[str] = None,
        is_redraw: bool = False,
        created_at: Optional[datetime] = None,
    ) -> None:
        if prize is not None:
            self.prize = prize
        if prize_id is not None:
            self.prize_id = prize_id
        if participant is not None:
            self.participant = participant
        if participant_id is not None:
            self.participant_id = participant_id
        if replaces is not None:
            self.replaces = replaces
        self.idempotency_key = idempotency_key
        self.is_redraw = is_redraw
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Outcome(id={id}, prize_id={prize}, participant_id={part}, is_redraw={redraw})>".format(
            id=self.id,
            prize=self.prize_id,
            part=self.participant_id,
            redraw=self.is_redraw,
        )

    @classmethod
    def get(cls, session: Session, outcome_id: int) -> Optional["Outcome"]:
        return session.get(cls, outcome_id)

    @classmethod
    def get_by_idempotency_key(cls, session: Session, key: str) -> Optional["Outcome"]:
        return session.scalar(select(cls).where(cls.idempotency_key == key))

    def slot_participant_ids(self) -> set[int]:
        """Return the winners of this prize unit, following the ``replaces`` chain."""

        ids = set()
        outcome: Optional[Outcome] = self
        while outcome is not None:
            ids.add(outcome.participant_id)
            outcome = outcome.replaces
        return ids

    @classmethod
    def live_participant_ids(cls, session: Session) -> set[int]:
        """Return ids of participants currently holding a non-voided outcome."""

        stmt = select(cls.participant_id).where(cls.is_redraw.is_(False))
        return set(session.scalars(stmt).all())

    @classmethod
    def void(
        cls, session: Session, outcome_id: int, *, voided_at: Optional[datetime] = None
    ) -> bool:
        """Mark ``outcome_id`` as voided if it is still live.

        Returns ``False`` when the outcome was already voided, which happens
        when two redraws of the same outcome race.
        """

        stmt = (
            update(cls)
            .where(cls.id == outcome_id, cls.is_redraw.is_(False))
            .values(is_redraw=True, voided_at=voided_at or datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1

    @classmethod
    def purge(cls, session: Session) -> int:
        """Delete every outcome row; return how many were removed."""

        stmt = delete(cls).execution_options(synchronize_session=False)
        return session.execute(stmt).rowcount

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prize_id": self.prize_id,
            "participant_id": self.participant_id,
            "is_redraw": self.is_redraw,
            "voided_at": dt_iso(self.voided_at),
            "replaces_outcome_id": self.replaces_outcome_id,
            "created_at": dt_iso(self.created_at),
        }


__all__ = ["Outcome"]
