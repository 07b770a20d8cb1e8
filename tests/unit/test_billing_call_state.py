"""Unit tests for the billing call payment state machine and read-time status."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from copro.models.billing_call import BillingCall, CallStatus, PaymentState
from copro.services.billing_service import apply_payment
from copro.services.errors import OverpaymentRejectedError, ValidationError

PAID_AT = datetime(2025, 2, 10, 9, 30, tzinfo=timezone.utc)


def make_call(
    montant_appele="100.00",
    montant_paye="0.00",
    state=PaymentState.UNPAID,
    date_echeance=date(2025, 1, 1),
) -> BillingCall:
    """Build a transient billing call for the first quarter of 2025."""
    return BillingCall(
        charge_id=1,
        owner_id=1,
        periode_debut=date(2025, 1, 1),
        periode_fin=date(2025, 3, 31),
        montant_appele=Decimal(montant_appele),
        montant_paye=Decimal(montant_paye),
        payment_state=state,
        date_echeance=date_echeance,
    )


class TestApplyPayment:
    """Test unpaid -> partial -> paid transitions."""

    def test_partial_payment(self):
        call = make_call()

        apply_payment(call, Decimal("40.00"), PAID_AT, reference="VIR-001")

        assert call.montant_paye == Decimal("40.00")
        assert call.payment_state == PaymentState.PARTIAL
        assert call.date_paiement == PAID_AT
        assert call.reference_paiement == "VIR-001"
        assert call.montant_restant == Decimal("60.00")

    def test_partial_then_full_payment(self):
        call = make_call()

        apply_payment(call, Decimal("40.00"), PAID_AT)
        apply_payment(call, Decimal("60.00"), PAID_AT)

        assert call.montant_paye == Decimal("100.00")
        assert call.payment_state == PaymentState.PAID
        assert call.montant_restant == Decimal("0.00")

    def test_single_full_payment(self):
        call = make_call()

        apply_payment(call, Decimal("100.00"), PAID_AT)

        assert call.payment_state == PaymentState.PAID

    def test_reference_kept_when_not_given(self):
        call = make_call()

        apply_payment(call, Decimal("10.00"), PAID_AT, reference="CHQ-12")
        apply_payment(call, Decimal("10.00"), PAID_AT)

        assert call.reference_paiement == "CHQ-12"

    def test_overpayment_rejected_and_nothing_changes(self):
        call = make_call(montant_paye="40.00", state=PaymentState.PARTIAL)

        with pytest.raises(OverpaymentRejectedError):
            apply_payment(call, Decimal("60.01"), PAID_AT)

        assert call.montant_paye == Decimal("40.00")
        assert call.payment_state == PaymentState.PARTIAL
        assert call.date_paiement is None

    def test_payment_on_paid_call_rejected(self):
        call = make_call(montant_paye="100.00", state=PaymentState.PAID)

        with pytest.raises(OverpaymentRejectedError):
            apply_payment(call, Decimal("0.01"), PAID_AT)

    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    def test_non_positive_amount_rejected(self, amount):
        call = make_call()

        with pytest.raises(ValidationError):
            apply_payment(call, Decimal(amount), PAID_AT)

        assert call.montant_paye == Decimal("0.00")

    def test_sub_cent_amount_rejected(self):
        with pytest.raises(ValidationError):
            apply_payment(make_call(), Decimal("10.005"), PAID_AT)


class TestReadTimeStatus:
    """Overdue-ness is derived from the due date at read time."""

    def test_unpaid_before_and_on_due_date(self):
        call = make_call(date_echeance=date(2025, 1, 31))

        assert call.statut(date(2025, 1, 15)) == CallStatus.EN_ATTENTE
        assert call.statut(date(2025, 1, 31)) == CallStatus.EN_ATTENTE
        assert not call.is_overdue(date(2025, 1, 31))

    def test_unpaid_after_due_date_is_overdue(self):
        call = make_call(date_echeance=date(2025, 1, 31))

        assert call.is_overdue(date(2025, 2, 1))
        assert call.statut(date(2025, 2, 1)) == CallStatus.EN_RETARD

    def test_partial_status(self):
        call = make_call(montant_paye="40.00", state=PaymentState.PARTIAL, date_echeance=date(2025, 1, 31))

        assert call.statut(date(2025, 1, 10)) == CallStatus.PARTIELLEMENT_PAYE
        assert call.statut(date(2025, 3, 1)) == CallStatus.EN_RETARD

    def test_paid_is_never_overdue(self):
        call = make_call(montant_paye="100.00", state=PaymentState.PAID)

        assert not call.is_overdue(date(2030, 1, 1))
        assert call.statut(date(2030, 1, 1)) == CallStatus.PAYE

    def test_status_follows_payment(self):
        """The same call moves from en_retard to paye once paid."""
        call = make_call(date_echeance=date(2025, 1, 1))
        as_of = date(2025, 3, 1)
        assert call.statut(as_of) == CallStatus.EN_RETARD

        apply_payment(call, Decimal("100.00"), PAID_AT)

        assert call.statut(as_of) == CallStatus.PAYE
