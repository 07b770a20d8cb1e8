"""Billing call (appel de charges) ORM model with its payment state."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from copro.models import Base, BaseModel
from copro.models.charge import enum_values


class PaymentState(str, Enum):
    """Payment progress of a billing call."""

    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    """Terminal: no further payment is accepted"""


class CallStatus(str, Enum):
    """Single-enum status shown to users, derived at read time."""

    EN_ATTENTE = "en_attente"
    PARTIELLEMENT_PAYE = "partiellement_paye"
    PAYE = "paye"
    EN_RETARD = "en_retard"


class BillingCall(Base, BaseModel):
    """One periodic amount owed by one owner for one recurring charge.

    Payment progress (payment_state) is stored; overdue-ness is not, it is
    recomputed from date_echeance on every read. montant_paye never decreases.
    """

    __tablename__ = "billing_calls"

    charge_id: Mapped[int] = mapped_column(
        ForeignKey("charge_definitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("owners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exercise_id: Mapped[int | None] = mapped_column(
        ForeignKey("exercises.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    periode_debut: Mapped[date] = mapped_column(Date, nullable=False)
    periode_fin: Mapped[date] = mapped_column(Date, nullable=False)

    montant_appele: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    montant_paye: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )
    payment_state: Mapped[PaymentState] = mapped_column(
        SQLEnum(PaymentState, name="paymentstate", values_callable=enum_values),
        nullable=False,
        default=PaymentState.UNPAID,
    )

    date_echeance: Mapped[date] = mapped_column(Date, nullable=False)
    date_paiement: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reference_paiement: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    charge: Mapped["ChargeDefinition"] = relationship(  # noqa: F821
        "ChargeDefinition",
        back_populates="billing_calls",
    )
    owner: Mapped["Owner"] = relationship("Owner")  # noqa: F821

    __table_args__ = (
        UniqueConstraint(
            "charge_id",
            "owner_id",
            "periode_debut",
            "periode_fin",
            name="uq_billing_call_charge_owner_period",
        ),
        Index("idx_billing_call_period", "periode_debut", "periode_fin"),
        Index("idx_billing_call_state", "payment_state"),
    )

    @property
    def montant_restant(self) -> Decimal:
        """Amount still owed."""
        return Decimal(self.montant_appele) - Decimal(self.montant_paye or 0)

    def is_overdue(self, as_of: date) -> bool:
        """Whether the call is not fully paid and its due date has passed."""
        return self.payment_state != PaymentState.PAID and as_of > self.date_echeance

    def statut(self, as_of: date) -> CallStatus:
        """Project payment state and overdue-ness onto the legacy status enum."""
        if self.payment_state == PaymentState.PAID:
            return CallStatus.PAYE
        if self.is_overdue(as_of):
            return CallStatus.EN_RETARD
        if self.payment_state == PaymentState.PARTIAL:
            return CallStatus.PARTIELLEMENT_PAYE
        return CallStatus.EN_ATTENTE

    def __repr__(self) -> str:
        return (
            f"<BillingCall(id={self.id}, charge_id={self.charge_id}, owner_id={self.owner_id}, "
            f"periode={self.periode_debut}..{self.periode_fin}, "
            f"montant_appele={self.montant_appele}, montant_paye={self.montant_paye}, "
            f"payment_state={self.payment_state})>"
        )


__all__ = ["BillingCall", "PaymentState", "CallStatus"]
