"""
Seller authorization tests.

Verifies:
- check_authorized answers (never raises) for every seller state
- Only active HR employees may approve or revoke sellers
- Revocation takes effect on the next check
"""

import pytest

from polimarket.errors import HREmployeeInvalid, SellerAlreadyExists, SellerNotFound
from polimarket.models import HREmployee
from polimarket.services import authorization_service


class TestCheckAuthorized:

    def test_authorized_seller(self, seller):
        check = authorization_service.check_authorized("V001")
        assert check.authorized is True
        assert check.seller.code == "V001"

    def test_unknown_seller(self, db_session):
        check = authorization_service.check_authorized("NOPE")
        assert check.authorized is False
        assert check.reason == "Seller not found"
        assert check.seller is None

    def test_blank_code(self, db_session):
        assert authorization_service.check_authorized("").authorized is False

    def test_pending_seller(self, pending_seller):
        check = authorization_service.check_authorized("V006")
        assert check.authorized is False
        assert check.reason == "Seller is not authorized"

    def test_inactive_seller(self, db_session, seller):
        seller.is_active = False
        db_session.commit()
        check = authorization_service.check_authorized("V001")
        assert check.authorized is False
        assert check.reason == "Seller is inactive"


class TestHRWorkflow:

    def test_authorize_new_seller(self, hr_employee):
        seller = authorization_service.authorize_seller(
            code="V010",
            hr_employee_id="HR001",
            name="Nuevo Vendedor",
            territory="Tunja",
            commission_rate_bps=500,
        )
        assert seller.is_authorized is True
        assert seller.authorized_by_hr_id == "HR001"
        assert seller.authorized_at is not None
        assert authorization_service.check_authorized("V010").authorized is True

    def test_unknown_hr_employee_cannot_authorize(self, db_session):
        with pytest.raises(HREmployeeInvalid):
            authorization_service.authorize_seller(code="V010", hr_employee_id="HR999", name="X")

    def test_inactive_hr_employee_cannot_authorize(self, db_session):
        db_session.add(HREmployee(id="HR009", name="Ex Empleado", is_active=False))
        db_session.commit()
        assert authorization_service.validate_hr_employee("HR009") is False
        with pytest.raises(HREmployeeInvalid):
            authorization_service.authorize_seller(code="V010", hr_employee_id="HR009", name="X")

    def test_duplicate_seller_rejected(self, seller):
        with pytest.raises(SellerAlreadyExists):
            authorization_service.authorize_seller(code="V001", hr_employee_id="HR001", name="Dup")

    def test_revoke_then_reauthorize(self, seller):
        authorization_service.update_authorization_status("V001", False, "HR001")
        assert authorization_service.check_authorized("V001").authorized is False

        authorization_service.update_authorization_status("V001", True, "HR001")
        assert authorization_service.check_authorized("V001").authorized is True

    def test_update_unknown_seller(self, hr_employee):
        with pytest.raises(SellerNotFound):
            authorization_service.update_authorization_status("NOPE", True, "HR001")

    def test_register_pending_and_list(self, seller):
        authorization_service.register_pending_seller(code="V007", name="Roberto Carlos Mendoza")

        authorized = [s.code for s in authorization_service.list_authorized_sellers()]
        pending = [s.code for s in authorization_service.list_pending_sellers()]
        assert authorized == ["V001"]
        assert pending == ["V007"]

    def test_deactivate_seller(self, seller):
        authorization_service.deactivate_seller("V001", "HR001")
        assert authorization_service.check_authorized("V001").authorized is False
        assert authorization_service.list_authorized_sellers() == []
