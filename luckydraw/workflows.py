from typing import Iterable, Mapping, Optional
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .models import Outcome, Participant, Prize, PrizeCategory


def register_participant(
    session: Session,
    *,
    employee_id: str,
    full_name: str,
    department: Optional[str] = None,
    dietary: Optional[str] = None,
    remark: Optional[str] = None,
) -> Participant:
    """Add a participant to the directory.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    employee_id : str
        Unique employee reference. Surrounding whitespace is ignored.
    full_name : str
        Name shown when the participant wins.
    department : Optional[str]
        Department shown alongside the winner.
    dietary : Optional[str]
        Dietary note; the spreadsheet placeholder ``"None"`` is stored as ``None``.
    remark : Optional[str]
        Free form note.

    Returns
    -------
    Participant
        The flushed participant with its ``id`` populated.

    Raises
    ------
    ValueError
        If ``employee_id`` or ``full_name`` is blank, or the employee is
        already registered.
    """

    if not full_name or not full_name.strip():
        raise ValueError("full_name is required")
    if Participant.get_by_employee_id(session, employee_id or "") is not None:
        raise ValueError(f"Participant {employee_id!r} is already registered")

    participant = Participant(
        employee_id=employee_id,
        full_name=full_name.strip(),
        department=department,
        dietary=dietary,
        remark=remark,
    )
    session.add(participant)
    session.flush()
    return participant


def import_participants(
    session: Session, rows: Iterable[Mapping[str, Optional[str]]]
) -> dict[str, int]:
    """Register participants from spreadsheet-style rows.

    Accepts the column spellings produced by the registration sheet
    (``EmployeeID``/``employeeId``, ``Name``/``fullName``/``full_name``,
    ``Department``/``department``, ``Dietary``/``dietary``). Rows missing an
    employee id or name, and employees already registered, are skipped.

    Returns
    -------
    dict[str, int]
        ``{"created": n, "skipped": m}``.
    """

    created = skipped = 0
    for row in rows:
        employee_id = (row.get("EmployeeID") or row.get("employeeId") or "").strip()
        full_name = (
            row.get("Name") or row.get("fullName") or row.get("full_name") or ""
        ).strip()
        if not employee_id or not full_name:
            skipped += 1
            continue
        if Participant.get_by_employee_id(session, employee_id) is not None:
            skipped += 1
            continue
        session.add(
            Participant(
                employee_id=employee_id,
                full_name=full_name,
                department=row.get("Department") or row.get("department"),
                dietary=row.get("Dietary") or row.get("dietary"),
            )
        )
        session.flush()
        created += 1
    return {"created": created, "skipped": skipped}


def toggle_check_in(session: Session, employee_id: str) -> Participant:
    """Flip the check-in state of the participant identified by ``employee_id``.

    Raises
    ------
    ValueError
        If no participant has that employee id.
    """

    participant = Participant.get_by_employee_id(session, employee_id)
    if participant is None:
        raise ValueError(f"Participant {employee_id!r} not found")
    participant.toggle_check_in()
    session.flush()
    return participant


def bulk_check_in(session: Session, now: Optional[datetime] = None) -> int:
    """Check in every participant who is not checked in yet; return the count."""

    stmt = (
        update(Participant)
        .where(Participant.checked_in.is_(False))
        .values(checked_in=True, checked_in_at=now or datetime.now(timezone.utc))
        .execution_options(synchronize_session="fetch")
    )
    return session.execute(stmt).rowcount


def delete_participant(session: Session, participant: Participant) -> None:
    """Remove ``participant`` from the directory.

    Raises
    ------
    ValueError
        If the participant appears in the outcome log, voided entries included.
    """

    has_won = session.scalar(
        select(Outcome.id).where(Outcome.participant_id == participant.id).limit(1)
    )
    if has_won is not None:
        raise ValueError("Cannot delete participant who has won a prize")
    session.delete(participant)
    session.flush()


def create_prize(
    session: Session,
    *,
    name: str,
    category: "PrizeCategory | str",
    stock: int,
    description: Optional[str] = None,
) -> Prize:
    """Add a prize to the ledger with ``remaining`` equal to ``stock``.

    Raises
    ------
    ValueError
        If ``name`` is blank, ``category`` is unknown or ``stock`` is negative.
    """

    if not name or not name.strip():
        raise ValueError("name is required")
    prize = Prize(
        name=name.strip(),
        category=category,
        stock=stock,
        description=description,
    )
    session.add(prize)
    session.flush()
    return prize


def set_prize_active(session: Session, prize: Prize, active: bool) -> Prize:
    """Enable or disable drawing of ``prize``."""

    prize.is_active = active
    session.flush()
    return prize
