"""Typed failures raised by the lucky draw engine.

Errors fall into three groups so that an operator UI can tell them apart:

* :class:`ValidationError`: the request itself is malformed.
* :class:`StateError`: the prize pool cannot satisfy the request right now.
* :class:`ConcurrencyError`: another caller committed first; retrying is safe.
"""

from __future__ import annotations

from typing import Optional


class LuckyDrawError(Exception):
    """Base class for every engine failure."""

    code = "lucky_draw_error"
    retryable = False


class ValidationError(LuckyDrawError):
    code = "validation_error"


class InvalidIdentifier(ValidationError):
    code = "invalid_identifier"

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"{field} must be a positive integer id, got {value!r}")
        self.field = field
        self.value = value


class IdempotencyKeyReused(ValidationError):
    code = "idempotency_key_reused"

    def __init__(self, key: str, prize_id: int, existing_prize_id: int) -> None:
        super().__init__(
            f"Idempotency key {key!r} was already used for prize {existing_prize_id}, "
            f"not prize {prize_id}"
        )
        self.key = key
        self.prize_id = prize_id
        self.existing_prize_id = existing_prize_id


class StateError(LuckyDrawError):
    code = "state_error"


class PrizeNotFound(StateError):
    code = "prize_not_found"

    def __init__(self, prize_id: int) -> None:
        super().__init__(f"Prize {prize_id} not found")
        self.prize_id = prize_id


class PrizeInactive(StateError):
    code = "prize_inactive"

    def __init__(self, prize_id: int) -> None:
        super().__init__(f"Prize {prize_id} is not active")
        self.prize_id = prize_id


class PrizeExhausted(StateError):
    code = "prize_exhausted"

    def __init__(self, prize_id: int) -> None:
        super().__init__(f"Prize {prize_id} has no remaining stock")
        self.prize_id = prize_id


class OutcomeNotFound(StateError):
    code = "outcome_not_found"

    def __init__(self, outcome_id: int) -> None:
        super().__init__(f"Outcome {outcome_id} not found")
        self.outcome_id = outcome_id


class OutcomeAlreadyVoided(StateError):
    code = "outcome_already_voided"

    def __init__(self, outcome_id: int) -> None:
        super().__init__(f"Outcome {outcome_id} has already been redrawn")
        self.outcome_id = outcome_id


class NoCandidates(StateError):
    """Nobody is left who may win the prize."""

    code = "no_candidates"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "All participants have already won a prize")


class NoCheckedInParticipants(NoCandidates):
    """No checked-in participant without a prize is left for a grand-tier draw."""

    code = "no_checked_in_participants"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "No eligible checked-in participants for GRAND prize")


class ConcurrencyError(LuckyDrawError):
    code = "concurrency_error"
    retryable = True


class StockRaceLost(ConcurrencyError):
    """The remaining-stock precondition failed at commit time."""

    code = "stock_race_lost"

    def __init__(self, prize_id: int) -> None:
        super().__init__(
            f"Prize {prize_id} was exhausted by a concurrent draw; nothing was recorded"
        )
        self.prize_id = prize_id


class DuplicateWinner(ConcurrencyError):
    """The selected participant won a concurrent draw before this one committed."""

    code = "duplicate_winner"

    def __init__(self, participant_id: Optional[int] = None) -> None:
        super().__init__(
            "Selected participant already holds a prize; nothing was recorded"
            if participant_id is None
            else f"Participant {participant_id} already holds a prize; nothing was recorded"
        )
        self.participant_id = participant_id


__all__ = [
    "LuckyDrawError",
    "ValidationError",
    "InvalidIdentifier",
    "IdempotencyKeyReused",
    "StateError",
    "PrizeNotFound",
    "PrizeInactive",
    "PrizeExhausted",
    "OutcomeNotFound",
    "OutcomeAlreadyVoided",
    "NoCandidates",
    "NoCheckedInParticipants",
    "ConcurrencyError",
    "StockRaceLost",
    "DuplicateWinner",
]
