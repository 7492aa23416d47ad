"""
Program Day Service
Enrols program days and records attendance, keeping the beneficiary's
counters in step with its program-day rows.

Each public method is one unit of work: the program-day change and the
counter update are committed together or rolled back together.
"""
from typing import List, Optional, Tuple
from datetime import date as date_type
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shisha.core.exceptions import Conflict, InvalidArgument, NotFound, ShishaException
from shisha.models.beneficiary import ACTIVITY_TYPES, Beneficiary, ProgramDay
from shisha.services import counters
from shisha.services.validation import require_choice, require_id

logger = logging.getLogger(__name__)

NOTES_MAX_LENGTH = 500


class ProgramDayService:
    """Program-day enrolment and attendance tracking"""

    def __init__(self, db: Session):
        self.db = db

    def add_day(
        self,
        beneficiary_id: int,
        day_number: int,
        date: Optional[date_type] = None,
        activity_type: str = "check-in",
        notes: Optional[str] = None,
    ) -> ProgramDay:
        """
        Enrol a new program day

        Raises:
            NotFound: beneficiary does not exist
            Conflict: the beneficiary already has this day number
        """
        beneficiary_id = require_id(beneficiary_id, "beneficiary ID")
        if isinstance(day_number, bool) or not isinstance(day_number, int) or day_number < 1:
            raise InvalidArgument("dayNumber must be a positive integer")
        activity_type = require_choice(activity_type or "check-in", ACTIVITY_TYPES, "activityType")
        self._check_notes(notes)

        try:
            beneficiary = counters.lock_beneficiary(self.db, beneficiary_id)
            if beneficiary is None:
                raise NotFound("Beneficiary not found")

            existing = self.db.query(ProgramDay).filter(
                ProgramDay.beneficiary_id == beneficiary_id,
                ProgramDay.day_number == day_number,
            ).first()
            if existing:
                raise Conflict("Program day already exists for this beneficiary")

            program_day = ProgramDay(
                beneficiary_id=beneficiary_id,
                day_number=day_number,
                date=date or date_type.today(),
                activity_type=activity_type,
                notes=notes,
                attended=False,
            )
            self.db.add(program_day)
            try:
                self.db.flush()
            except IntegrityError:
                # Lost a race with another request enrolling the same day
                raise Conflict("Program day already exists for this beneficiary")

            counters.add_program_day_slot(self.db, beneficiary_id)
            counters.sync_attendance_rate(self.db, beneficiary)
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(f"Add program day rejected for beneficiary {beneficiary_id}: {e}")
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(program_day)
        logger.info(f"Program day {day_number} added for beneficiary {beneficiary_id}")
        return program_day

    def set_attendance(
        self,
        beneficiary_id: int,
        day_id: int,
        attended: bool,
        notes: Optional[str] = None,
    ) -> ProgramDay:
        """
        Mark a program day attended or not attended

        A false->true transition adds a completed day unless the beneficiary
        is already at capacity, in which case the attendance flag is still
        stored and completedDays stays at totalProgramDays. A true->false
        transition removes one, floored at zero.
        """
        beneficiary_id = require_id(beneficiary_id, "beneficiary ID")
        day_id = require_id(day_id, "day ID")
        if not isinstance(attended, bool):
            raise InvalidArgument("attended must be true or false")
        self._check_notes(notes)

        try:
            beneficiary = counters.lock_beneficiary(self.db, beneficiary_id)
            program_day = self._get_owned_day(beneficiary_id, day_id) if beneficiary else None
            if program_day is None:
                raise NotFound("Program day not found")

            was_attended = program_day.attended
            program_day.attended = attended
            if notes is not None:
                program_day.notes = notes
            self.db.flush()

            if attended and not was_attended:
                if not counters.mark_day_completed(self.db, beneficiary_id):
                    logger.info(
                        f"Beneficiary {beneficiary_id} already at {beneficiary.total_program_days} "
                        f"completed days; attendance stored without incrementing"
                    )
            elif was_attended and not attended:
                counters.unmark_day_completed(self.db, beneficiary_id)

            counters.sync_attendance_rate(self.db, beneficiary)
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(f"Attendance update rejected for beneficiary {beneficiary_id}, day {day_id}: {e}")
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(program_day)
        logger.info(f"Program day {day_id} attendance set to {attended} for beneficiary {beneficiary_id}")
        return program_day

    def remove_day(self, beneficiary_id: int, day_id: int) -> None:
        """Delete a program day and release its slot from the beneficiary's counters"""
        beneficiary_id = require_id(beneficiary_id, "beneficiary ID")
        day_id = require_id(day_id, "day ID")

        try:
            beneficiary = counters.lock_beneficiary(self.db, beneficiary_id)
            program_day = self._get_owned_day(beneficiary_id, day_id) if beneficiary else None
            if program_day is None:
                raise NotFound("Program day not found")

            was_attended = program_day.attended
            self.db.delete(program_day)
            self.db.flush()

            counters.release_program_day_slot(self.db, beneficiary_id, was_attended)
            counters.sync_attendance_rate(self.db, beneficiary)
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(f"Program day removal rejected for beneficiary {beneficiary_id}, day {day_id}: {e}")
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Program day {day_id} removed from beneficiary {beneficiary_id}")

    def list_days(self, beneficiary_id: int, skip: int = 0, limit: int = 50) -> Tuple[List[ProgramDay], int]:
        """Program days ordered by day number, with the total count"""
        beneficiary_id = require_id(beneficiary_id, "beneficiary ID")
        if self.db.get(Beneficiary, beneficiary_id) is None:
            raise NotFound("Beneficiary not found")

        query = self.db.query(ProgramDay).filter(ProgramDay.beneficiary_id == beneficiary_id)
        total = query.count()
        days = query.order_by(ProgramDay.day_number).offset(skip).limit(limit).all()
        return days, total

    def _get_owned_day(self, beneficiary_id: int, day_id: int) -> Optional[ProgramDay]:
        return (
            self.db.query(ProgramDay)
            .filter(ProgramDay.id == day_id, ProgramDay.beneficiary_id == beneficiary_id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def _check_notes(notes: Optional[str]) -> None:
        if notes is not None and len(notes) > NOTES_MAX_LENGTH:
            raise InvalidArgument(f"Notes cannot exceed {NOTES_MAX_LENGTH} characters")
