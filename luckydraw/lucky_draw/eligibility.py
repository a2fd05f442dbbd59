"""Candidate filtering for a single draw."""

from __future__ import annotations

from typing import Collection, Iterable, Protocol, Sequence, TypeVar

from .errors import NoCandidates, NoCheckedInParticipants
from ..models.prize import PrizeCategory


class Entrant(Protocol):
    id: int
    checked_in: bool


P = TypeVar("P", bound=Entrant)


def resolve_eligible(
    category: PrizeCategory,
    participants: Iterable[P],
    winner_ids: Collection[int],
    *,
    exclude: Collection[int] = (),
) -> list[P]:
    """Return the participants that may win a prize of ``category``.

    Parameters
    ----------
    category : PrizeCategory
        Tier of the prize being drawn. Top-tier prizes only admit
        participants whose ``checked_in`` flag is set.
    participants : Iterable
        Snapshot of the participant directory. Each item needs ``id`` and
        ``checked_in`` attributes.
    winner_ids : Collection[int]
        Ids of participants that already hold a non-voided outcome.
    exclude : Collection[int], default: ()
        Extra ids kept out of this particular slot (the voided winner during
        a redraw).

    Returns
    -------
    list
        Eligible participants in snapshot order.

    Raises
    ------
    NoCheckedInParticipants
        For a top-tier prize when no checked-in participant is left.
    NoCandidates
        For any other tier when nobody is left.
    """

    top_tier = category.is_top_tier
    eligible = [
        p
        for p in participants
        if (not top_tier or p.checked_in)
        and p.id not in winner_ids
        and p.id not in exclude
    ]
    if not eligible:
        if top_tier:
            raise NoCheckedInParticipants()
        raise NoCandidates()
    return eligible


def pick_winner(candidates: Sequence[P], rng) -> P:
    """Select one candidate uniformly at random using ``rng.randrange``."""

    if not candidates:
        raise NoCandidates()
    return candidates[rng.randrange(len(candidates))]


__all__ = ["resolve_eligible", "pick_winner"]
