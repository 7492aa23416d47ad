"""
Beneficiary Counter Updates

Every change to ``total_program_days`` / ``completed_days`` goes through the
conditional UPDATE statements in this module instead of read-modify-write on
a loaded row. The WHERE clause carries the invariant (completed never above
total, neither below zero), so two requests racing on the same beneficiary
cannot push the counters out of range; the loser simply matches no row.

Callers own the transaction: nothing here commits.
"""
from typing import Optional
from sqlalchemy import case
from sqlalchemy.orm import Session

from shisha.models.beneficiary import Beneficiary
from shisha.services.progress import attendance_rate


def lock_beneficiary(db: Session, beneficiary_id: int) -> Optional[Beneficiary]:
    """Load a beneficiary, taking its row lock where the backend supports it"""
    return (
        db.query(Beneficiary)
        .filter(Beneficiary.id == beneficiary_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def add_program_day_slot(db: Session, beneficiary_id: int) -> bool:
    """totalProgramDays += 1"""
    updated = (
        db.query(Beneficiary)
        .filter(Beneficiary.id == beneficiary_id)
        .update(
            {Beneficiary.total_program_days: Beneficiary.total_program_days + 1},
            synchronize_session=False,
        )
    )
    return updated == 1


def release_program_day_slot(db: Session, beneficiary_id: int, was_attended: bool) -> bool:
    """
    totalProgramDays -= 1 (floored at 0), completedDays -= 1 when the removed
    day was attended (floored at 0), in a single statement

    completedDays is also capped at the new total: days credited by a
    distribution have no program-day row of their own, so removing an
    unattended day can otherwise leave completed above total.
    """
    new_total = case(
        (Beneficiary.total_program_days > 0, Beneficiary.total_program_days - 1),
        else_=0,
    )
    if was_attended:
        base_completed = case(
            (Beneficiary.completed_days > 0, Beneficiary.completed_days - 1),
            else_=0,
        )
    else:
        base_completed = Beneficiary.completed_days

    updated = (
        db.query(Beneficiary)
        .filter(Beneficiary.id == beneficiary_id)
        .update(
            {
                Beneficiary.total_program_days: new_total,
                Beneficiary.completed_days: case(
                    (base_completed > new_total, new_total),
                    else_=base_completed,
                ),
            },
            synchronize_session=False,
        )
    )
    return updated == 1


def mark_day_completed(db: Session, beneficiary_id: int) -> bool:
    """
    completedDays += 1 only while completedDays < totalProgramDays

    Returns False when the beneficiary is already at capacity.
    """
    updated = (
        db.query(Beneficiary)
        .filter(
            Beneficiary.id == beneficiary_id,
            Beneficiary.completed_days < Beneficiary.total_program_days,
        )
        .update(
            {Beneficiary.completed_days: Beneficiary.completed_days + 1},
            synchronize_session=False,
        )
    )
    return updated == 1


def unmark_day_completed(db: Session, beneficiary_id: int) -> bool:
    """completedDays -= 1 only while completedDays > 0"""
    updated = (
        db.query(Beneficiary)
        .filter(
            Beneficiary.id == beneficiary_id,
            Beneficiary.completed_days > 0,
        )
        .update(
            {Beneficiary.completed_days: Beneficiary.completed_days - 1},
            synchronize_session=False,
        )
    )
    return updated == 1


def sync_attendance_rate(db: Session, beneficiary: Beneficiary) -> Beneficiary:
    """
    Reload the counters written above and store the derived attendance rate

    Runs inside the caller's transaction after the counter UPDATE, which
    already holds the row's write lock.
    """
    db.refresh(beneficiary)
    beneficiary.attendance_rate = attendance_rate(
        beneficiary.completed_days, beneficiary.total_program_days
    )
    db.flush()
    return beneficiary
