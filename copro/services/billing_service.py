"""Billing calls (appels de charges): generation, payment recording and listing.

Generation policy:
- A charge's billing window is split into sub-periods of its frequency.
- Each sub-period's amount (annual / divisor, prorated by days for a clipped
  period) is split across liable owners with the charge's repartition key.
- An already materialized (charge, owner, period) is a silent no-op: it is
  reported as skipped and never rewritten, so montant_paye is preserved.
- A batch is all-or-nothing: any failure rolls back every call of the batch.

Payment policy:
- montant_paye only increases; credit balances are not allowed, a payment
  above the amount still owed is rejected.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import NamedTuple, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from copro.models.billing_call import BillingCall, CallStatus, PaymentState
from copro.models.charge import ChargeDefinition
from copro.models.owner import Owner
from copro.services.allocation_service import to_cents
from copro.services.audit_service import AuditEntity, AuditService
from copro.services.building_service import BuildingService
from copro.services.charge_service import ChargeService
from copro.services.errors import (
    ConflictError,
    NotFoundError,
    OverpaymentRejectedError,
    ValidationError,
)
from copro.services.period_service import split_period, year_bounds
from copro.services.repartition_service import RepartitionService

logger = logging.getLogger(__name__)


class GenerationResult(NamedTuple):
    """Outcome of a billing call generation batch."""

    created: list[BillingCall]
    skipped: list[BillingCall]
    """Calls that already existed for the same (charge, owner, period)"""

    @property
    def calls(self) -> list[BillingCall]:
        return self.created + self.skipped


def apply_payment(
    call: BillingCall,
    amount: Decimal,
    paid_at: datetime,
    reference: str | None = None,
) -> BillingCall:
    """Record a payment on a billing call and advance its payment state.

    unpaid -> partial (0 < paid < called) -> paid (paid >= called, terminal).

    Raises:
        ValidationError: If amount is not a positive amount in cents
        OverpaymentRejectedError: If the call is paid or the payment exceeds what is owed
    """
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    if amount != to_cents(amount):
        raise ValidationError("Payment amount must have at most 2 decimal places")

    if call.payment_state == PaymentState.PAID:
        raise OverpaymentRejectedError(f"Billing call {call.id} is already fully paid")

    already_paid = Decimal(call.montant_paye or 0)
    new_total = already_paid + amount
    if new_total > Decimal(call.montant_appele):
        raise OverpaymentRejectedError(
            f"Payment of {amount} exceeds the {call.montant_restant} still owed on billing call {call.id}"
        )

    call.montant_paye = new_total
    call.payment_state = (
        PaymentState.PAID if new_total >= Decimal(call.montant_appele) else PaymentState.PARTIAL
    )
    call.date_paiement = paid_at
    if reference is not None:
        call.reference_paiement = reference
    return call


class BillingService:
    """Service for billing call database operations."""

    def __init__(self, db_session: Session, due_date_offset_days: int = 0):
        """Initialize with database session and due date policy.

        Args:
            db_session: Database session
            due_date_offset_days: Days from sub-period start to the due date
        """
        self.db = db_session
        self.due_date_offset_days = due_date_offset_days
        self.buildings = BuildingService(db_session)
        self.charges = ChargeService(db_session)
        self.repartition = RepartitionService(db_session)

    def get_call(self, call_id: int) -> BillingCall:
        """Get billing call by ID.

        Raises:
            NotFoundError: If the call does not exist
        """
        call = self.db.query(BillingCall).filter(BillingCall.id == call_id).first()
        if call is None:
            raise NotFoundError(f"Billing call {call_id} not found")
        return call

    def generate_billing_calls(
        self,
        charge_id: int,
        period_start: date,
        period_end: date,
        actor_id: int | None = None,
    ) -> GenerationResult:
        """Materialize the billing calls of one charge over [period_start, period_end].

        Args:
            charge_id: Charge to bill
            period_start: First day of the window
            period_end: Last day of the window (inclusive)
            actor_id: Administrator performing the action

        Returns:
            GenerationResult with created and already existing calls

        Raises:
            NotFoundError: If the charge does not exist
            ValidationError: If the window is inverted or the charge is inactive
            ConflictError: If a concurrent writer materialized the same calls
        """
        charge = self.charges.get_charge(charge_id)
        if not charge.actif:
            raise ValidationError(f"Charge {charge_id} is not active")
        self._check_window(period_start, period_end)

        owners = self._owners(charge.building_id)
        return self._run_batch(
            [charge],
            owners,
            period_start,
            period_end,
            actor_id,
            audit_entity=(AuditEntity.CHARGE, charge.id),
        )

    def generate_building_calls(
        self,
        building_id: int,
        period_start: date,
        period_end: date,
        actor_id: int | None = None,
    ) -> GenerationResult:
        """Materialize billing calls for every active charge overlapping the window, in one batch.

        Raises:
            NotFoundError: If the building does not exist
            ValidationError: If the window is inverted
            ConflictError: If a concurrent writer materialized the same calls
        """
        self.buildings.get_building(building_id)
        self._check_window(period_start, period_end)

        charges = [
            charge
            for charge in self.db.query(ChargeDefinition)
            .filter(
                ChargeDefinition.building_id == building_id,
                ChargeDefinition.actif.is_(True),
            )
            .order_by(ChargeDefinition.id)
            .all()
            if charge.overlaps(period_start, period_end)
        ]
        owners = self._owners(building_id)
        return self._run_batch(
            charges,
            owners,
            period_start,
            period_end,
            actor_id,
            audit_entity=(AuditEntity.BUILDING, building_id),
        )

    def record_payment(
        self,
        call_id: int,
        amount: Decimal,
        reference: str | None = None,
        paid_at: datetime | None = None,
        actor_id: int | None = None,
    ) -> BillingCall:
        """Record a (partial) payment on a billing call.

        Raises:
            NotFoundError: If the call does not exist
            ValidationError: If the amount is not positive
            OverpaymentRejectedError: If the payment would exceed the amount called
        """
        call = self.get_call(call_id)
        try:
            amount = Decimal(str(amount))
        except InvalidOperation as e:
            raise ValidationError(f"Invalid payment amount {amount!r}") from e
        if not amount.is_finite():
            raise ValidationError(f"Invalid payment amount {amount!r}")

        try:
            apply_payment(call, amount, paid_at or datetime.now(timezone.utc), reference)
        except OverpaymentRejectedError:
            logger.warning("Rejected payment of %s on billing call %d", amount, call_id)
            raise

        try:
            AuditService.log_payment(self.db, call, amount, actor_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(call)

        logger.info(
            "Recorded payment on billing call %d: amount=%s, paid=%s/%s, state=%s",
            call.id,
            amount,
            call.montant_paye,
            call.montant_appele,
            call.payment_state.value,
        )
        return call

    def list_calls(
        self,
        building_id: int,
        annee: int | None = None,
        owner_id: int | None = None,
        statut: CallStatus | str | None = None,
        as_of: date | None = None,
    ) -> list[BillingCall]:
        """List a building's billing calls, newest period first.

        The statut filter uses the status projected at as_of, so overdue calls are
        recomputed on every read.

        Raises:
            NotFoundError: If the building does not exist
            ValidationError: If statut is not a known status
        """
        self.buildings.get_building(building_id)
        as_of = as_of or date.today()

        query = (
            self.db.query(BillingCall)
            .join(ChargeDefinition, BillingCall.charge_id == ChargeDefinition.id)
            .join(Owner, BillingCall.owner_id == Owner.id)
            .filter(ChargeDefinition.building_id == building_id)
        )
        if annee is not None:
            first_day, last_day = year_bounds(annee)
            query = query.filter(
                BillingCall.periode_debut >= first_day,
                BillingCall.periode_debut <= last_day,
            )
        if owner_id is not None:
            query = query.filter(BillingCall.owner_id == owner_id)

        calls = query.order_by(BillingCall.periode_debut.desc(), Owner.nom, BillingCall.id).all()

        if statut is not None:
            try:
                wanted = CallStatus(statut)
            except ValueError as e:
                allowed = ", ".join(status.value for status in CallStatus)
                raise ValidationError(f"Invalid statut {statut!r}; expected one of: {allowed}") from e
            calls = [call for call in calls if call.statut(as_of) == wanted]

        return calls

    def _check_window(self, period_start: date, period_end: date) -> None:
        if period_start > period_end:
            raise ValidationError("period_start must not be after period_end")

    def _owners(self, building_id: int) -> list[Owner]:
        return (
            self.db.query(Owner).filter(Owner.building_id == building_id).order_by(Owner.id).all()
        )

    def _run_batch(
        self,
        charges: Sequence[ChargeDefinition],
        owners: Sequence[Owner],
        period_start: date,
        period_end: date,
        actor_id: int | None,
        audit_entity: tuple[AuditEntity, int],
    ) -> GenerationResult:
        entity, entity_id = audit_entity
        created: list[BillingCall] = []
        skipped: list[BillingCall] = []
        try:
            for charge in charges:
                charge_created, charge_skipped = self._materialize(
                    charge, owners, period_start, period_end
                )
                created.extend(charge_created)
                skipped.extend(charge_skipped)

            self.db.flush()
            AuditService.log_generation(
                self.db,
                entity,
                entity_id,
                period_start,
                period_end,
                created=len(created),
                skipped=len(skipped),
                actor_id=actor_id,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(
                "Billing call batch %s=%d for %s..%s conflicted with existing calls",
                entity.value,
                entity_id,
                period_start,
                period_end,
            )
            raise ConflictError("Billing calls for this period were materialized concurrently") from e
        except Exception:
            self.db.rollback()
            logger.error(
                "Billing call batch %s=%d for %s..%s failed, rolled back",
                entity.value,
                entity_id,
                period_start,
                period_end,
                exc_info=True,
            )
            raise

        logger.info(
            "Generated billing calls for %s=%d over %s..%s: created=%d, skipped=%d",
            entity.value,
            entity_id,
            period_start,
            period_end,
            len(created),
            len(skipped),
        )
        return GenerationResult(created=created, skipped=skipped)

    def _materialize(
        self,
        charge: ChargeDefinition,
        owners: Sequence[Owner],
        period_start: date,
        period_end: date,
    ) -> tuple[list[BillingCall], list[BillingCall]]:
        """Add (without committing) the missing calls of one charge over the window."""
        existing = {
            (call.owner_id, call.periode_debut, call.periode_fin): call
            for call in self.db.query(BillingCall)
            .filter(
                BillingCall.charge_id == charge.id,
                BillingCall.periode_debut >= period_start,
                BillingCall.periode_debut <= period_end,
            )
            .all()
        }

        divisor = charge.frequence.divisor
        created = []
        skipped = []
        for period in split_period(period_start, period_end, charge.frequence):
            if not charge.overlaps(period.start, period.end):
                continue

            period_amount = to_cents(Decimal(charge.montant_annuel) / divisor * period.ratio)
            shares = self.repartition.allocate_charge(charge, owners, period_amount)

            for owner_id, share in sorted(shares.items()):
                if share <= 0:
                    continue
                key = (owner_id, period.start, period.end)
                if key in existing:
                    skipped.append(existing[key])
                    continue

                call = BillingCall(
                    charge_id=charge.id,
                    owner_id=owner_id,
                    exercise_id=charge.exercise_id,
                    periode_debut=period.start,
                    periode_fin=period.end,
                    montant_appele=share,
                    montant_paye=Decimal("0.00"),
                    payment_state=PaymentState.UNPAID,
                    date_echeance=period.start + timedelta(days=self.due_date_offset_days),
                )
                self.db.add(call)
                created.append(call)

        return created, skipped


__all__ = ["BillingService", "GenerationResult", "apply_payment"]
