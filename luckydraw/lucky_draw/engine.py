"""Engine that selects winners, guards prize stock, and records outcomes."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Collection, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from .eligibility import pick_winner, resolve_eligible
from .errors import (
    DuplicateWinner,
    IdempotencyKeyReused,
    InvalidIdentifier,
    OutcomeAlreadyVoided,
    OutcomeNotFound,
    PrizeExhausted,
    PrizeInactive,
    PrizeNotFound,
    StockRaceLost,
)
from ..broadcast.hub import WINNER_EVENT, Broadcaster
from ..db.utils import dt_iso
from ..models import Outcome, Participant, Prize, PrizeCategory

logger = logging.getLogger(__name__)

MAX_IDEMPOTENCY_KEY_LENGTH = 64
# Ids are BIGINT columns.
MAX_ID = 2**63 - 1


@dataclass(frozen=True)
class OutcomeView:
    """Outcome joined with the display fields of its winner and prize.

    Attributes
    ----------
    id : int
        Outcome primary key.
    prize_id : int
        Prize whose unit was awarded.
    participant_id : int
        Winning participant.
    winner_name : str
        Participant's full name.
    employee_id : str
        Participant's employee reference.
    department : Optional[str]
        Participant's department, if known.
    prize_name : str
        Display name of the prize.
    prize_category : PrizeCategory
        Tier of the prize.
    is_redraw : bool
        ``True`` when the outcome has been voided by a redraw.
    created_at : datetime
        When the winner was selected.
    replaces_outcome_id : Optional[int]
        Voided outcome this one superseded, for redraw results.
    """

    id: int
    prize_id: int
    participant_id: int
    winner_name: str
    employee_id: str
    department: Optional[str]
    prize_name: str
    prize_category: PrizeCategory
    is_redraw: bool
    created_at: datetime
    replaces_outcome_id: Optional[int] = None

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> "OutcomeView":
        participant = outcome.participant
        prize = outcome.prize
        return cls(
            id=outcome.id,
            prize_id=outcome.prize_id,
            participant_id=outcome.participant_id,
            winner_name=participant.full_name,
            employee_id=participant.employee_id,
            department=participant.department,
            prize_name=prize.name,
            prize_category=prize.category,
            is_redraw=outcome.is_redraw,
            created_at=outcome.created_at,
            replaces_outcome_id=outcome.replaces_outcome_id,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prize_id": self.prize_id,
            "participant_id": self.participant_id,
            "winner_name": self.winner_name,
            "employee_id": self.employee_id,
            "department": self.department,
            "prize_name": self.prize_name,
            "prize_category": self.prize_category.value,
            "is_redraw": self.is_redraw,
            "created_at": dt_iso(self.created_at),
            "replaces_outcome_id": self.replaces_outcome_id,
        }


def _coerce_id(field: str, value: object) -> int:
    """Accept positive integers (or their decimal string form) as record ids."""

    if isinstance(value, bool):
        raise InvalidIdentifier(field, value)
    if isinstance(value, int):
        ident = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        ident = int(value.strip())
    else:
        raise InvalidIdentifier(field, value)
    if not 0 < ident <= MAX_ID:
        raise InvalidIdentifier(field, value)
    return ident


class LuckyDrawEngine:
    """Run draws and redraws against a shared database.

    Every call opens its own session from ``session_factory`` and commits (or
    rolls back) before returning, so a single engine may be shared between
    threads. Notifications are published only after a successful commit.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        broadcaster: Optional[Broadcaster] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Create a lucky draw engine.

        Parameters
        ----------
        session_factory : sessionmaker
            Factory producing sessions bound to the prize/participant store.
        broadcaster : Optional[Broadcaster], default: None
            Receives a ``lucky-draw:winner`` event after each committed draw
            or redraw. When omitted no notifications are sent.
        rng : Optional[random.Random], default: None
            Random source used for uniform selection. Tests pass a seeded
            instance; the default is a fresh :class:`random.Random`.
        """

        self._session_factory = session_factory
        self._broadcaster = broadcaster
        self._rng = rng or random.Random()

    @property
    def broadcaster(self) -> Optional[Broadcaster]:
        return self._broadcaster

    def draw(self, prize_id: int, *, idempotency_key: Optional[str] = None) -> OutcomeView:
        """Award one unit of ``prize_id`` to a randomly selected participant.

        Parameters
        ----------
        prize_id : int
            Prize to draw.
        idempotency_key : Optional[str], default: None
            Token identifying this request. A retry carrying a key that
            already produced an outcome returns that outcome instead of
            drawing again.

        Returns
        -------
        OutcomeView
            The committed outcome.

        Notes
        -----
        The stock decrement and the outcome insert share one transaction.
        The decrement is a conditional ``UPDATE`` so concurrent draws for the
        same prize can never take more units than ``stock``.

        Raises
        ------
        InvalidIdentifier
            If ``prize_id`` is missing or not a positive integer.
        PrizeNotFound, PrizeInactive, PrizeExhausted
            If the prize cannot be drawn.
        NoCandidates, NoCheckedInParticipants
            If nobody is eligible.
        StockRaceLost
            If a concurrent draw took the last unit first.
        DuplicateWinner
            If the selected participant won a concurrent draw first.
        """

        pid = _coerce_id("prize_id", prize_id)
        if idempotency_key is not None:
            self._check_idempotency_key(idempotency_key)
            replay = self._replay(pid, idempotency_key)
            if replay is not None:
                return replay

        winner_id: Optional[int] = None
        try:
            with self._session_factory.begin() as session:
                prize = self._load_drawable_prize(session, pid)
                candidates = self._eligible_candidates(session, prize)
                winner = pick_winner(candidates, self._rng)
                winner_id = winner.id
                self._take_stock_unit(session, prize)
                outcome = self._append_outcome(
                    session,
                    prize=prize,
                    participant=winner,
                    idempotency_key=idempotency_key,
                )
                view = OutcomeView.from_outcome(outcome)
        except IntegrityError as exc:
            if idempotency_key is not None:
                replay = self._replay(pid, idempotency_key)
                if replay is not None:
                    return replay
            logger.warning(
                f"Draw for prize {pid} rolled back: participant {winner_id} won concurrently"
            )
            raise DuplicateWinner(winner_id) from exc

        logger.info(
            f"Prize {pid} awarded to participant {view.participant_id} (outcome {view.id})"
        )
        self._notify(view)
        return view

    def redraw(self, outcome_id: int) -> OutcomeView:
        """Void ``outcome_id`` and award the same prize unit to someone else.

        The prize's ``remaining`` counter is left untouched: the unit changes
        hands, no unit is created or consumed. Everyone who has held this
        slot is kept out of it but may win other prizes later.

        Raises
        ------
        InvalidIdentifier
            If ``outcome_id`` is missing or not a positive integer.
        OutcomeNotFound
            If the outcome does not exist.
        PrizeInactive
            If the outcome's prize has been deactivated.
        OutcomeAlreadyVoided
            If the outcome was already redrawn, possibly by a concurrent call.
        NoCandidates, NoCheckedInParticipants
            If nobody is eligible; the void is rolled back.
        DuplicateWinner
            If the selected participant won a concurrent draw first.
        """

        oid = _coerce_id("outcome_id", outcome_id)
        winner_id: Optional[int] = None
        try:
            with self._session_factory.begin() as session:
                previous = Outcome.get(session, oid)
                if previous is None:
                    raise OutcomeNotFound(oid)
                prize = previous.prize
                if not prize.is_active:
                    raise PrizeInactive(prize.id)
                if previous.is_redraw or not Outcome.void(session, previous.id):
                    raise OutcomeAlreadyVoided(oid)
                session.expire(previous, ["is_redraw", "voided_at"])

                candidates = self._eligible_candidates(
                    session, prize, exclude=previous.slot_participant_ids()
                )
                winner = pick_winner(candidates, self._rng)
                winner_id = winner.id
                replacement = self._append_outcome(
                    session, prize=prize, participant=winner, replaces=previous
                )
                view = OutcomeView.from_outcome(replacement)
        except IntegrityError as exc:
            logger.warning(
                f"Redraw of outcome {oid} rolled back: participant {winner_id} won concurrently"
            )
            raise DuplicateWinner(winner_id) from exc

        logger.info(
            f"Outcome {oid} voided; prize {view.prize_id} redrawn to participant "
            f"{view.participant_id} (outcome {view.id})"
        )
        self._notify(view)
        return view

    def list_outcomes(self) -> list[OutcomeView]:
        """Return the current winners (non-voided outcomes), newest first."""

        stmt = (
            self._outcome_query()
            .where(Outcome.is_redraw.is_(False))
            .order_by(Outcome.created_at.desc(), Outcome.id.desc())
        )
        with self._session_factory() as session:
            return [OutcomeView.from_outcome(o) for o in session.scalars(stmt).all()]

    def list_history(self) -> list[OutcomeView]:
        """Return every outcome, voided ones included, in the order recorded."""

        stmt = self._outcome_query().order_by(Outcome.id.asc())
        with self._session_factory() as session:
            return [OutcomeView.from_outcome(o) for o in session.scalars(stmt).all()]

    def get_outcome(self, outcome_id: int) -> OutcomeView:
        oid = _coerce_id("outcome_id", outcome_id)
        with self._session_factory() as session:
            outcome = session.scalar(self._outcome_query().where(Outcome.id == oid))
            if outcome is None:
                raise OutcomeNotFound(oid)
            return OutcomeView.from_outcome(outcome)

    # -------- internals --------
    @staticmethod
    def _outcome_query():
        return select(Outcome).options(
            joinedload(Outcome.participant), joinedload(Outcome.prize)
        )

    @staticmethod
    def _check_idempotency_key(key: str) -> None:
        if not isinstance(key, str) or not key.strip() or len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
            raise InvalidIdentifier("idempotency_key", key)

    @staticmethod
    def _load_drawable_prize(session: Session, prize_id: int) -> Prize:
        prize = Prize.get(session, prize_id)
        if prize is None:
            raise PrizeNotFound(prize_id)
        if not prize.is_active:
            raise PrizeInactive(prize_id)
        if prize.remaining <= 0:
            raise PrizeExhausted(prize_id)
        return prize

    @staticmethod
    def _eligible_candidates(
        session: Session, prize: Prize, *, exclude: Collection[int] = ()
    ) -> list[Participant]:
        participants = Participant.list_snapshot(
            session, checked_in_only=prize.category.is_top_tier
        )
        winner_ids = Outcome.live_participant_ids(session)
        return resolve_eligible(prize.category, participants, winner_ids, exclude=exclude)

    @staticmethod
    def _take_stock_unit(session: Session, prize: Prize) -> None:
        if not Prize.conditional_decrement_remaining(session, prize.id):
            logger.warning(f"Prize {prize.id} exhausted by a concurrent draw")
            raise StockRaceLost(prize.id)
        # The UPDATE bypassed the identity map.
        session.expire(prize, ["remaining"])

    def _append_outcome(
        self,
        session: Session,
        *,
        prize: Prize,
        participant: Participant,
        replaces: Optional[Outcome] = None,
        idempotency_key: Optional[str] = None,
    ) -> Outcome:
        outcome = Outcome(
            prize=prize,
            participant=participant,
            replaces=replaces,
            idempotency_key=idempotency_key,
        )
        session.add(outcome)
        session.flush()
        return outcome

    def _replay(self, prize_id: int, key: str) -> Optional[OutcomeView]:
        with self._session_factory() as session:
            existing = Outcome.get_by_idempotency_key(session, key)
            if existing is None:
                return None
            if existing.prize_id != prize_id:
                raise IdempotencyKeyReused(key, prize_id, existing.prize_id)
            logger.info(f"Replaying outcome {existing.id} for idempotency key")
            return OutcomeView.from_outcome(existing)

    def _notify(self, view: OutcomeView) -> None:
        if self._broadcaster is None:
            return
        try:
            self._broadcaster.publish(WINNER_EVENT, view.to_json())
        except Exception:
            logger.exception(f"Failed to broadcast outcome {view.id}")


__all__ = ["LuckyDrawEngine", "OutcomeView"]
