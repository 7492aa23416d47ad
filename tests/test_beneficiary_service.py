"""
Tests for Beneficiary Service
Registration, updates and statistics
"""

import pytest
from decimal import Decimal
from sqlalchemy.orm import Session

from shisha.core.exceptions import Conflict, InvalidArgument, NotFound
from shisha.models.beneficiary import Beneficiary, ProgramDay
from shisha.schemas.beneficiary import BeneficiaryStatus
from shisha.services.beneficiaries import BeneficiaryService
from shisha.services.distribution import DistributionService
from shisha.services.program_days import ProgramDayService
from shisha.services.status_reconciliation import reconcile_statuses


class TestCreateBeneficiary:
    """Test suite for BeneficiaryService.create_beneficiary"""

    def test_create_success(self, db_session: Session, sample_beneficiary_data: dict):
        beneficiary = BeneficiaryService(db_session).create_beneficiary(sample_beneficiary_data)

        assert beneficiary.id is not None
        assert beneficiary.status == "active"
        assert beneficiary.total_program_days == 0
        assert beneficiary.completed_days == 0
        assert beneficiary.attendance_rate == 0
        assert beneficiary.full_name == "Aline Uwase"

    def test_duplicate_national_id(self, db_session: Session, beneficiary: Beneficiary, sample_beneficiary_data: dict):
        with pytest.raises(Conflict, match="national ID"):
            BeneficiaryService(db_session).create_beneficiary(sample_beneficiary_data)

        assert db_session.query(Beneficiary).count() == 1

    def test_missing_fields(self, db_session: Session, sample_beneficiary_data: dict):
        data = {**sample_beneficiary_data, "village": "  "}
        del data["first_name"]

        with pytest.raises(InvalidArgument, match="Missing: firstName, village"):
            BeneficiaryService(db_session).create_beneficiary(data)

    def test_unknown_worker(self, db_session: Session, sample_beneficiary_data: dict):
        with pytest.raises(NotFound, match="Assigned user"):
            BeneficiaryService(db_session).create_beneficiary({**sample_beneficiary_data, "user_id": 999})

    def test_invalid_type(self, db_session: Session, sample_beneficiary_data: dict):
        with pytest.raises(InvalidArgument, match="type"):
            BeneficiaryService(db_session).create_beneficiary({**sample_beneficiary_data, "type": "adult"})


class TestUpdateBeneficiary:
    """Test suite for BeneficiaryService.update_beneficiary"""

    def test_update_identity_fields(self, db_session: Session, beneficiary: Beneficiary):
        updated = BeneficiaryService(db_session).update_beneficiary(
            beneficiary.id, {"village": "Remera", "type": "breastfeeding"}
        )

        assert updated.village == "Remera"
        assert updated.type == "breastfeeding"

    def test_deactivate_and_reactivate(self, db_session: Session, beneficiary: Beneficiary):
        service = BeneficiaryService(db_session)

        assert service.update_beneficiary(beneficiary.id, {"status": BeneficiaryStatus.INACTIVE}).status == "inactive"
        assert service.update_beneficiary(beneficiary.id, {"status": "active"}).status == "active"

    def test_counters_are_not_writable(self, db_session: Session, beneficiary: Beneficiary):
        with pytest.raises(InvalidArgument, match="completed_days"):
            BeneficiaryService(db_session).update_beneficiary(beneficiary.id, {"completed_days": 3})

    def test_completed_cannot_be_set_directly(self, db_session: Session, beneficiary: Beneficiary):
        with pytest.raises(InvalidArgument, match="automatically"):
            BeneficiaryService(db_session).update_beneficiary(beneficiary.id, {"status": "completed"})

    def test_completed_is_terminal(self, db_session: Session, enrolled_beneficiary: Beneficiary):
        program_days = ProgramDayService(db_session)
        for day in program_days.list_days(enrolled_beneficiary.id)[0]:
            program_days.set_attendance(enrolled_beneficiary.id, day.id, True)
        reconcile_statuses(db_session)

        with pytest.raises(InvalidArgument, match="cannot change status"):
            BeneficiaryService(db_session).update_beneficiary(enrolled_beneficiary.id, {"status": "active"})

    def test_blank_national_id_is_rejected(self, db_session: Session, beneficiary: Beneficiary):
        """Whitespace-only identity values do not overwrite the stored ones"""
        service = BeneficiaryService(db_session)

        with pytest.raises(InvalidArgument, match="Missing: nationalId"):
            service.update_beneficiary(beneficiary.id, {"national_id": "   "})
        with pytest.raises(InvalidArgument, match="Missing: village"):
            service.update_beneficiary(beneficiary.id, {"village": "\t"})

        db_session.refresh(beneficiary)
        assert beneficiary.national_id == "1199880012345678"
        assert beneficiary.village == "Kimironko"

    def test_national_id_is_trimmed(self, db_session: Session, beneficiary: Beneficiary):
        updated = BeneficiaryService(db_session).update_beneficiary(
            beneficiary.id, {"national_id": "  1199880055555555 "}
        )

        assert updated.national_id == "1199880055555555"

    def test_duplicate_national_id_on_update(
        self, db_session: Session, beneficiary: Beneficiary, sample_beneficiary_data: dict
    ):
        service = BeneficiaryService(db_session)
        other = service.create_beneficiary({**sample_beneficiary_data, "national_id": "1199880099999999"})

        with pytest.raises(Conflict):
            service.update_beneficiary(other.id, {"national_id": beneficiary.national_id})


class TestDeleteBeneficiary:
    """Test suite for BeneficiaryService.delete_beneficiary"""

    def test_delete_cascades_to_program_days(self, db_session: Session, enrolled_beneficiary: Beneficiary):
        BeneficiaryService(db_session).delete_beneficiary(enrolled_beneficiary.id)

        assert db_session.query(Beneficiary).count() == 0
        assert db_session.query(ProgramDay).count() == 0

    def test_delete_with_distributions_conflicts(
        self, db_session: Session, enrolled_beneficiary: Beneficiary, worker, product, worker_stock
    ):
        DistributionService(db_session).distribute(enrolled_beneficiary.id, product.id, Decimal("1"), worker.id)

        with pytest.raises(Conflict, match="distribution"):
            BeneficiaryService(db_session).delete_beneficiary(enrolled_beneficiary.id)

        assert db_session.query(Beneficiary).count() == 1

    def test_delete_unknown(self, db_session: Session):
        with pytest.raises(NotFound):
            BeneficiaryService(db_session).delete_beneficiary(999)


class TestListAndStats:
    """Test suite for listing and statistics"""

    def test_filters(self, db_session: Session, beneficiary: Beneficiary, sample_beneficiary_data: dict):
        service = BeneficiaryService(db_session)
        service.create_beneficiary({
            **sample_beneficiary_data, "national_id": "1199880099999999", "village": "Gikondo", "type": "child",
        })

        assert service.list_beneficiaries()[1] == 2
        assert service.list_beneficiaries(beneficiary_type="child")[1] == 1
        assert service.list_beneficiaries(village="kimir")[0][0].id == beneficiary.id
        assert service.list_beneficiaries(status="inactive")[1] == 0

    def test_pagination(self, db_session: Session, sample_beneficiary_data: dict):
        service = BeneficiaryService(db_session)
        for index in range(5):
            service.create_beneficiary({**sample_beneficiary_data, "national_id": f"11998800000000{index:02d}"})

        items, total = service.list_beneficiaries(skip=3, limit=3)

        assert total == 5
        assert len(items) == 2

    def test_stats(self, db_session: Session, enrolled_beneficiary: Beneficiary, sample_beneficiary_data: dict):
        service = BeneficiaryService(db_session)
        other = service.create_beneficiary({
            **sample_beneficiary_data, "national_id": "1199880099999999", "type": "child",
        })
        service.update_beneficiary(other.id, {"status": "inactive"})
        program_days = ProgramDayService(db_session)
        first_day = program_days.list_days(enrolled_beneficiary.id)[0][0]
        program_days.set_attendance(enrolled_beneficiary.id, first_day.id, True)

        stats = service.get_stats()

        assert stats["total"] == 2
        assert stats["active"] == 1
        assert stats["inactive"] == 1
        assert stats["completed"] == 0
        assert stats["pregnant"] == 1
        assert stats["child"] == 1
        assert stats["average_attendance"] == 10.0

    def test_stats_on_empty_registry(self, db_session: Session):
        stats = BeneficiaryService(db_session).get_stats()

        assert stats["total"] == 0
        assert stats["average_attendance"] == 0.0
