"""Lucky draw engine: eligibility, selection, guarded stock and outcome log."""

from .eligibility import pick_winner, resolve_eligible
from .engine import LuckyDrawEngine, OutcomeView
from .errors import (
    ConcurrencyError,
    DuplicateWinner,
    IdempotencyKeyReused,
    InvalidIdentifier,
    LuckyDrawError,
    NoCandidates,
    NoCheckedInParticipants,
    OutcomeAlreadyVoided,
    OutcomeNotFound,
    PrizeExhausted,
    PrizeInactive,
    PrizeNotFound,
    StateError,
    StockRaceLost,
    ValidationError,
)
from .reset import ResetSummary, delete_all_prizes, reset_pool

__all__ = [
    "LuckyDrawEngine",
    "OutcomeView",
    "ResetSummary",
    "delete_all_prizes",
    "pick_winner",
    "reset_pool",
    "resolve_eligible",
    "ConcurrencyError",
    "DuplicateWinner",
    "IdempotencyKeyReused",
    "InvalidIdentifier",
    "LuckyDrawError",
    "NoCandidates",
    "NoCheckedInParticipants",
    "OutcomeAlreadyVoided",
    "OutcomeNotFound",
    "PrizeExhausted",
    "PrizeInactive",
    "PrizeNotFound",
    "StateError",
    "StockRaceLost",
    "ValidationError",
]
