"""Recurring charge definition (charge récurrente) ORM model and its enumerations."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from copro.models import Base, BaseModel


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Store enum values (not member names) in the database."""
    return [member.value for member in enum_cls]


class ChargeType(str, Enum):
    """Categories of recurring charges."""

    FONDS_ROULEMENT = "fonds_roulement"
    FONDS_RESERVE = "fonds_reserve"
    CHARGES_GENERALES = "charges_generales"
    CHARGES_SPECIALES = "charges_speciales"
    """Special assessment: the only type that accepts owner exclusions"""

    FRAIS_ADMINISTRATION = "frais_administration"


# Display order of the charge catalog
CHARGE_TYPE_ORDER = {
    ChargeType.FONDS_ROULEMENT: 1,
    ChargeType.FONDS_RESERVE: 2,
    ChargeType.CHARGES_SPECIALES: 3,
    ChargeType.CHARGES_GENERALES: 4,
    ChargeType.FRAIS_ADMINISTRATION: 5,
}


class Frequency(str, Enum):
    """Billing frequency of a recurring charge."""

    MENSUEL = "mensuel"
    TRIMESTRIEL = "trimestriel"
    SEMESTRIEL = "semestriel"
    ANNUEL = "annuel"

    @property
    def divisor(self) -> int:
        """Number of billing periods per year."""
        return FREQUENCY_DIVISORS[self]

    @property
    def months(self) -> int:
        """Length of one nominal billing period in months."""
        return 12 // FREQUENCY_DIVISORS[self]


FREQUENCY_DIVISORS = {
    Frequency.MENSUEL: 12,
    Frequency.TRIMESTRIEL: 4,
    Frequency.SEMESTRIEL: 2,
    Frequency.ANNUEL: 1,
}


class RepartitionKey(str, Enum):
    """Rule used to split a charge across owners."""

    MILLIEMES = "milliemes"
    EGALITAIRE = "egalitaire"
    CUSTOM = "custom"


class ChargeDefinition(Base, BaseModel):
    """Recurring charge owned by one building, optionally scoped to one exercise.

    Deleting a charge removes its exclusions, custom quotas and billing calls.
    """

    __tablename__ = "charge_definitions"

    building_id: Mapped[int] = mapped_column(
        ForeignKey("buildings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exercise_id: Mapped[int | None] = mapped_column(
        ForeignKey("exercises.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    type: Mapped[ChargeType] = mapped_column(
        SQLEnum(ChargeType, name="chargetype", values_callable=enum_values),
        nullable=False,
    )
    libelle: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    montant_annuel: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Annual amount in euros",
    )
    frequence: Mapped[Frequency] = mapped_column(
        SQLEnum(Frequency, name="frequency", values_callable=enum_values),
        nullable=False,
        default=Frequency.TRIMESTRIEL,
    )
    cle_repartition: Mapped[RepartitionKey] = mapped_column(
        SQLEnum(RepartitionKey, name="repartitionkey", values_callable=enum_values),
        nullable=False,
        default=RepartitionKey.MILLIEMES,
    )

    actif: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    date_debut: Mapped[date | None] = mapped_column(Date, nullable=True)
    date_fin: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    building: Mapped["Building"] = relationship(  # noqa: F821
        "Building",
        back_populates="charges",
    )
    exercise: Mapped["Exercise | None"] = relationship("Exercise")  # noqa: F821
    exclusions: Mapped[list["ChargeExclusion"]] = relationship(  # noqa: F821
        "ChargeExclusion",
        back_populates="charge",
        cascade="all, delete-orphan",
    )
    quotas: Mapped[list["CustomQuota"]] = relationship(  # noqa: F821
        "CustomQuota",
        back_populates="charge",
        cascade="all, delete-orphan",
    )
    billing_calls: Mapped[list["BillingCall"]] = relationship(  # noqa: F821
        "BillingCall",
        back_populates="charge",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_charge_building_actif", "building_id", "actif"),)

    def is_active_on(self, as_of: date) -> bool:
        """Whether the charge is active and as_of falls in its validity window."""
        if not self.actif:
            return False
        if self.date_debut is not None and as_of < self.date_debut:
            return False
        if self.date_fin is not None and as_of > self.date_fin:
            return False
        return True

    def overlaps(self, start: date, end: date) -> bool:
        """Whether [start, end] intersects the charge's validity window."""
        if self.date_debut is not None and end < self.date_debut:
            return False
        if self.date_fin is not None and start > self.date_fin:
            return False
        return True

    def excluded_owner_ids(self) -> set[int]:
        """Owners not liable for this charge (exclusions only apply to special charges)."""
        if self.type != ChargeType.CHARGES_SPECIALES:
            return set()
        return {exclusion.owner_id for exclusion in self.exclusions}

    def __repr__(self) -> str:
        return (
            f"<ChargeDefinition(id={self.id}, building_id={self.building_id}, "
            f"type={self.type}, libelle={self.libelle!r}, montant_annuel={self.montant_annuel}, "
            f"frequence={self.frequence}, cle_repartition={self.cle_repartition}, actif={self.actif})>"
        )


__all__ = [
    "ChargeDefinition",
    "ChargeType",
    "Frequency",
    "RepartitionKey",
    "CHARGE_TYPE_ORDER",
    "FREQUENCY_DIVISORS",
    "enum_values",
]
