"""
Beneficiary Service
Registration and maintenance of program beneficiaries.
Progress counters are not writable here; see ProgramDayService and
DistributionService.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shisha.core.exceptions import Conflict, InvalidArgument, NotFound, ShishaException
from shisha.models.auth import User
from shisha.models.beneficiary import BENEFICIARY_TYPES, Beneficiary
from shisha.models.distribution import Distribution
from shisha.services.validation import require_choice, require_id, require_present

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("user_id", "national_id", "first_name", "last_name", "village", "type", "status")
CLIENT_SETTABLE_STATUSES = ("active", "inactive")


class BeneficiaryService:
    """Beneficiary registry"""

    def __init__(self, db: Session):
        self.db = db

    def create_beneficiary(self, data: Dict[str, Any]) -> Beneficiary:
        """
        Register a new beneficiary, active with zeroed counters

        Raises:
            Conflict: national ID already registered
            NotFound: assigned field worker does not exist
        """
        require_present(
            userId=data.get("user_id"),
            nationalId=data.get("national_id"),
            firstName=data.get("first_name"),
            lastName=data.get("last_name"),
            village=data.get("village"),
            type=data.get("type"),
        )
        user_id = require_id(data["user_id"], "user ID")
        national_id = data["national_id"].strip()
        beneficiary_type = require_choice(data["type"], BENEFICIARY_TYPES, "type")

        try:
            if self.db.get(User, user_id) is None:
                raise NotFound("Assigned user not found")
            if self._find_by_national_id(national_id):
                raise Conflict("Beneficiary with this national ID already exists")

            beneficiary = Beneficiary(
                user_id=user_id,
                national_id=national_id,
                first_name=data["first_name"].strip(),
                last_name=data["last_name"].strip(),
                village=data["village"].strip(),
                type=beneficiary_type,
                status="active",
                total_program_days=0,
                completed_days=0,
                attendance_rate=0,
            )
            self.db.add(beneficiary)
            try:
                self.db.flush()
            except IntegrityError:
                raise Conflict("Beneficiary with this national ID already exists")
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(f"Beneficiary registration rejected for national ID {national_id}: {e}")
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(beneficiary)
        logger.info(f"Beneficiary {beneficiary.id} registered for user {user_id}")
        return beneficiary

    def get_beneficiary(self, beneficiary_id: int) -> Beneficiary:
        beneficiary_id = require_id(beneficiary_id, "beneficiary ID")
        beneficiary = self.db.get(Beneficiary, beneficiary_id)
        if beneficiary is None:
            raise NotFound("Beneficiary not found")
        return beneficiary

    def list_beneficiaries(
        self,
        status: Optional[str] = None,
        beneficiary_type: Optional[str] = None,
        village: Optional[str] = None,
        user_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Beneficiary], int]:
        """Filtered beneficiaries, newest first, with the total match count"""
        query = self.db.query(Beneficiary)
        if status:
            query = query.filter(Beneficiary.status == status)
        if beneficiary_type:
            query = query.filter(Beneficiary.type == beneficiary_type)
        if village:
            query = query.filter(Beneficiary.village.ilike(f"%{village}%"))
        if user_id is not None:
            query = query.filter(Beneficiary.user_id == user_id)

        total = query.count()
        items = (
            query.order_by(Beneficiary.created_at.desc(), Beneficiary.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    def update_beneficiary(self, beneficiary_id: int, updates: Dict[str, Any]) -> Beneficiary:
        """
        Update identity, classification or active/inactive status

        A completed beneficiary keeps its status: completion is one-way and
        only set by status reconciliation.
        """
        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidArgument(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        try:
            beneficiary = self.get_beneficiary(beneficiary_id)
            changes = {key: value for key, value in updates.items() if value is not None}

            if "status" in changes:
                new_status = require_choice(changes["status"], ("active", "inactive", "completed"), "status")
                if new_status != beneficiary.status:
                    if beneficiary.status == "completed":
                        raise InvalidArgument("A completed beneficiary cannot change status")
                    if new_status not in CLIENT_SETTABLE_STATUSES:
                        raise InvalidArgument("Completion is recorded automatically from program progress")
                changes["status"] = new_status

            if "type" in changes:
                changes["type"] = require_choice(changes["type"], BENEFICIARY_TYPES, "type")

            if "user_id" in changes:
                changes["user_id"] = require_id(changes["user_id"], "user ID")
                if self.db.get(User, changes["user_id"]) is None:
                    raise NotFound("Assigned user not found")

            for field, name in (("first_name", "firstName"), ("last_name", "lastName"), ("village", "village")):
                if field in changes:
                    changes[field] = changes[field].strip()
                    require_present(**{name: changes[field]})

            if "national_id" in changes:
                changes["national_id"] = changes["national_id"].strip()
                require_present(nationalId=changes["national_id"])
                existing = self._find_by_national_id(changes["national_id"])
                if existing and existing.id != beneficiary.id:
                    raise Conflict("Beneficiary with this national ID already exists")

            for field, value in changes.items():
                setattr(beneficiary, field, value)
            try:
                self.db.flush()
            except IntegrityError:
                raise Conflict("Beneficiary with this national ID already exists")
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(f"Beneficiary {beneficiary_id} update rejected: {e}")
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(beneficiary)
        return beneficiary

    def delete_beneficiary(self, beneficiary_id: int) -> None:
        """
        Delete a beneficiary together with its program days

        Beneficiaries with distributions are kept so the distribution
        history stays complete.
        """
        try:
            beneficiary = self.get_beneficiary(beneficiary_id)
            has_distributions = self.db.query(Distribution.id).filter(
                Distribution.beneficiary_id == beneficiary.id
            ).first()
            if has_distributions:
                raise Conflict("Beneficiary has distribution records and cannot be deleted")

            self.db.delete(beneficiary)
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(f"Beneficiary {beneficiary_id} deletion rejected: {e}")
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Beneficiary {beneficiary_id} deleted with its program days")

    def get_stats(self) -> Dict[str, Any]:
        """Counts by status and type plus the average attendance rate"""
        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        row = self.db.query(
            func.count(Beneficiary.id),
            count_where(Beneficiary.status == "active"),
            count_where(Beneficiary.status == "inactive"),
            count_where(Beneficiary.status == "completed"),
            count_where(Beneficiary.type == "pregnant"),
            count_where(Beneficiary.type == "breastfeeding"),
            count_where(Beneficiary.type == "child"),
            func.avg(Beneficiary.attendance_rate),
        ).one()

        return {
            "total": row[0] or 0,
            "active": int(row[1]),
            "inactive": int(row[2]),
            "completed": int(row[3]),
            "pregnant": int(row[4]),
            "breastfeeding": int(row[5]),
            "child": int(row[6]),
            "average_attendance": round(float(row[7]), 2) if row[7] is not None else 0.0,
        }

    def _find_by_national_id(self, national_id: str) -> Optional[Beneficiary]:
        return self.db.query(Beneficiary).filter(Beneficiary.national_id == national_id).first()
