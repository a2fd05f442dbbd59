"""Prize ledger models."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Integer,
    String,
    Text,
    select,
    text,
    update,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import ID_TYPE, Base
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .outcome import Outcome


class PrizeCategory(str, enum.Enum):
    """Prize tiers ordered from common to grand."""

    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    BIG = "BIG"
    GRAND = "GRAND"

    @property
    def is_top_tier(self) -> bool:
        """Whether only checked-in participants may win prizes of this tier."""
        return self is PrizeCategory.GRAND

    @classmethod
    def parse(cls, value: "PrizeCategory | str") -> "PrizeCategory":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown prize category: {value!r}") from None


class Prize(Base):
    """A prize with a finite number of awardable units."""

    __tablename__ = "prizes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, index=True, autoincrement=True)
    """Primary key."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Display name shown on the projector and in results."""

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    category: Mapped[PrizeCategory] = mapped_column(
        Enum(PrizeCategory, name="prize_category", native_enum=False, length=16),
        nullable=False,
        default=PrizeCategory.SMALL,
    )
    """Tier of the prize. ``GRAND`` prizes are restricted to checked-in participants."""

    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Total units ever available. Never changed by the draw engine."""

    remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Units still awardable. Only decremented through
    :meth:`conditional_decrement_remaining` and restored by a pool reset."""

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    """Inactive prizes cannot be drawn or redrawn."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    outcomes: Mapped[list["Outcome"]] = relationship(
        back_populates="prize",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    """Every outcome recorded against this prize, voided ones included."""

    __table_args__ = (
        CheckConstraint("stock >= 0", name="stock_non_negative"),
        CheckConstraint("remaining >= 0", name="remaining_non_negative"),
        CheckConstraint("remaining <= stock", name="remaining_within_stock"),
    )

    def __init__(
        self,
        *,
        name: str,
        category: "PrizeCategory | str" = PrizeCategory.SMALL,
        stock: int,
        remaining: Optional[int] = None,
        description: Optional[str] = None,
        is_active: bool = True,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        if stock < 0:
            raise ValueError("stock must not be negative")
        if remaining is None:
            remaining = stock
        if not 0 <= remaining <= stock:
            raise ValueError("remaining must be between 0 and stock")
        self.name = name
        self.category = PrizeCategory.parse(category)
        self.stock = stock
        self.remaining = remaining
        self.description = description
        self.is_active = is_active
        if created_at is not None:
            self.created_at = created_at
        if updated_at is not None:
            self.updated_at = updated_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Prize(id={id}, name={name}, category={cat}, remaining={rem}/{stock})>".format(
            id=self.id,
            name=self.name,
            cat=self.category.value if self.category else None,
            rem=self.remaining,
            stock=self.stock,
        )

    @property
    def awarded(self) -> int:
        """Number of units handed out since the last reset."""
        return self.stock - self.remaining

    @classmethod
    def get(cls, session: Session, prize_id: int) -> Optional["Prize"]:
        """Return the prize with ``prize_id`` or ``None``."""
        return session.get(cls, prize_id)

    @classmethod
    def list_all(cls, session: Session) -> list["Prize"]:
        """Return every prize, newest first."""
        stmt = select(cls).order_by(cls.created_at.desc(), cls.id.desc())
        return list(session.scalars(stmt).all())

    @classmethod
    def conditional_decrement_remaining(
        cls, session: Session, prize_id: int, expected_minimum: int = 1
    ) -> bool:
        """Take one unit from ``prize_id`` if at least ``expected_minimum`` remain.

        The check and the decrement are a single ``UPDATE ... WHERE`` statement
        so that concurrent callers are serialized by the database rather than
        by application code.

        Returns
        -------
        bool
            ``True`` when exactly one row was updated, ``False`` when the
            precondition no longer held.
        """

        stmt = (
            update(cls)
            .where(cls.id == prize_id, cls.remaining >= expected_minimum)
            .values(remaining=cls.remaining - 1)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    @classmethod
    def restore_all_stock(cls, session: Session) -> int:
        """Set ``remaining`` back to ``stock`` on every prize; return the row count."""

        stmt = (
            update(cls)
            .values(remaining=cls.stock)
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "stock": self.stock,
            "remaining": self.remaining,
            "is_active": self.is_active,
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }


__all__ = ["Prize", "PrizeCategory"]
