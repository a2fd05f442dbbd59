from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import Boolean, DateTime, String, Text, select, text
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from .base import ID_TYPE, Base
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .outcome import Outcome


class Participant(Base):
    """Event entrant as kept by the participant directory."""

    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, index=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    dietary: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    remark: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checked_in: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    outcomes: Mapped[list["Outcome"]] = relationship(back_populates="participant")

    def __init__(
        self,
        *,
        employee_id: str,
        full_name: str,
        department: Optional[str] = None,
        dietary: Optional[str] = None,
        remark: Optional[str] = None,
        checked_in: bool = False,
        checked_in_at: Optional[datetime] = None,
        registered_at: Optional[datetime] = None,
    ) -> None:
        self.employee_id = employee_id
        self.full_name = full_name
        self.department = department
        self.dietary = dietary
        self.remark = remark
        self.checked_in = checked_in
        if checked_in and checked_in_at is None:
            checked_in_at = datetime.now(timezone.utc)
        self.checked_in_at = checked_in_at
        if registered_at is not None:
            self.registered_at = registered_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Participant(id={id}, employee_id={emp}, checked_in={ci})>".format(
            id=self.id,
            emp=self.employee_id,
            ci=self.checked_in,
        )

    @validates("employee_id")
    def _normalize_employee_id(self, _key: str, value: str) -> str:
        normalized = (value or "").strip()
        if not normalized:
            raise ValueError("employee_id must not be empty")
        return normalized

    @validates("dietary")
    def _normalize_dietary(self, _key: str, value: Optional[str]) -> Optional[str]:
        # Spreadsheet imports write the literal string "None" for no restriction.
        if value is None or value.strip() in ("", "None"):
            return None
        return value.strip()

    @classmethod
    def get_by_employee_id(cls, session: Session, employee_id: str) -> Optional["Participant"]:
        """Get a participant by their employee reference."""
        return session.scalar(select(cls).where(cls.employee_id == employee_id.strip()))

    @classmethod
    def list_snapshot(
        cls, session: Session, *, checked_in_only: bool = False
    ) -> list["Participant"]:
        """Return the participants visible to a draw, ordered by ``id``.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        checked_in_only : bool, default: False
            Restrict the snapshot to participants with ``checked_in`` set.
        """

        stmt = select(cls)
        if checked_in_only:
            stmt = stmt.where(cls.checked_in.is_(True))
        return list(session.scalars(stmt.order_by(cls.id)).all())

    def toggle_check_in(self, now: Optional[datetime] = None) -> bool:
        """Flip the check-in flag and return the new state."""
        self.checked_in = not self.checked_in
        self.checked_in_at = (now or datetime.now(timezone.utc)) if self.checked_in else None
        return self.checked_in

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "full_name": self.full_name,
            "department": self.department,
            "dietary": self.dietary,
            "remark": self.remark,
            "checked_in": self.checked_in,
            "checked_in_at": dt_iso(self.checked_in_at),
            "registered_at": dt_iso(self.registered_at),
        }
