"""Integration tests for the audit trail."""

from datetime import date
from decimal import Decimal

import pytest

from copro.models import AuditLog
from copro.services.audit_service import AuditAction, AuditEntity, AuditService
from copro.services.billing_service import BillingService
from copro.services.charge_service import ChargeService


class TestAuditService:
    def test_log_stores_plain_values(self, db_session):
        AuditService.log(
            db_session, AuditEntity.CHARGE, 12, AuditAction.UPDATE, actor_id=4, changes={"actif": "False"}
        )
        db_session.commit()

        entry = db_session.query(AuditLog).one()
        assert (entry.entity_type, entry.entity_id, entry.action, entry.actor_id) == ("charge", 12, "update", 4)
        assert entry.changes == {"actif": "False"}

    def test_log_accepts_raw_values(self, db_session):
        AuditService.log(db_session, "billing_call", 3, "payment")
        db_session.commit()

        assert db_session.query(AuditLog).one().entity_type == "billing_call"

    def test_unknown_action_rejected(self, db_session):
        with pytest.raises(ValueError):
            AuditService.log(db_session, AuditEntity.CHARGE, 1, "archive")

    def test_charge_history(self, db_session, building, owners, make_charge):
        charge = make_charge()
        ChargeService(db_session).update_charge(building.id, charge.id, libelle="Ménage", actor_id=2)
        BillingService(db_session).generate_billing_calls(
            charge.id, date(2025, 1, 1), date(2025, 3, 31), actor_id=2
        )

        history = AuditService.history(db_session, AuditEntity.CHARGE, charge.id)

        assert [entry.action for entry in history] == ["create", "update", "generate"]
        assert history[2].changes == {
            "period_start": "2025-01-01",
            "period_end": "2025-03-31",
            "created": 3,
            "skipped": 0,
        }

    def test_payment_snapshot(self, db_session, owners, make_charge):
        charge = make_charge()
        billing = BillingService(db_session)
        call = billing.generate_billing_calls(charge.id, date(2025, 1, 1), date(2025, 1, 31)).created[0]

        billing.record_payment(call.id, Decimal("40.00"), actor_id=5)

        entry = AuditService.history(db_session, AuditEntity.BILLING_CALL, call.id)[0]
        assert entry.action == "payment"
        assert entry.actor_id == 5
        assert entry.changes == {"amount": "40.00", "montant_paye": "40.00", "payment_state": "partial"}
