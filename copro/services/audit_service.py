"""Audit trail of charge catalog and billing call events.

Entries join the caller's transaction: a rolled-back operation leaves no
audit row behind.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from copro.models.audit_log import AuditLog
from copro.models.billing_call import BillingCall


class AuditEntity(str, Enum):
    """Kind of record an audit entry is about."""

    BUILDING = "building"
    CHARGE = "charge"
    BILLING_CALL = "billing_call"


class AuditAction(str, Enum):
    """State change recorded by an audit entry."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    GENERATE = "generate"
    PAYMENT = "payment"


class AuditService:
    """Writes and reads audit entries for charges and billing calls."""

    @staticmethod
    def log(
        db: Session,
        entity: AuditEntity,
        entity_id: int,
        action: AuditAction,
        actor_id: int | None = None,
        changes: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Add an audit entry to the session without committing."""
        audit = AuditLog(
            entity_type=AuditEntity(entity).value,
            entity_id=entity_id,
            action=AuditAction(action).value,
            actor_id=actor_id,
            changes=changes,
        )
        db.add(audit)
        return audit

    @staticmethod
    def log_generation(
        db: Session,
        entity: AuditEntity,
        entity_id: int,
        period_start: date,
        period_end: date,
        created: int,
        skipped: int,
        actor_id: int | None = None,
    ) -> AuditLog:
        """Record a billing call generation run over a window.

        Args:
            db: Database session
            entity: CHARGE for a single charge, BUILDING for a building-wide run
            entity_id: Charge or building id
            period_start: First day of the billed window
            period_end: Last day of the billed window
            created: Number of calls materialized
            skipped: Number of calls that already existed
            actor_id: Administrator who ran the generation
        """
        return AuditService.log(
            db,
            entity,
            entity_id,
            AuditAction.GENERATE,
            actor_id,
            {
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "created": created,
                "skipped": skipped,
            },
        )

    @staticmethod
    def log_payment(
        db: Session, call: BillingCall, amount: Decimal, actor_id: int | None = None
    ) -> AuditLog:
        """Record a payment with the call's resulting paid amount and state."""
        return AuditService.log(
            db,
            AuditEntity.BILLING_CALL,
            call.id,
            AuditAction.PAYMENT,
            actor_id,
            {
                "amount": str(amount),
                "montant_paye": str(call.montant_paye),
                "payment_state": call.payment_state.value,
            },
        )

    @staticmethod
    def history(db: Session, entity: AuditEntity, entity_id: int) -> list[AuditLog]:
        """Entries of one entity, oldest first."""
        return (
            db.query(AuditLog)
            .filter(
                AuditLog.entity_type == AuditEntity(entity).value,
                AuditLog.entity_id == entity_id,
            )
            .order_by(AuditLog.id)
            .all()
        )


__all__ = ["AuditAction", "AuditEntity", "AuditService"]
