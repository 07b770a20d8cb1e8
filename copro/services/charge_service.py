"""Recurring charge catalog: create, edit and delete charge definitions.

Exclusions and custom quotas are written together with their charge in one
transaction, so a charge is never visible half-configured.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, NamedTuple

from sqlalchemy.orm import Session

from copro.models.billing_call import BillingCall
from copro.models.charge import (
    CHARGE_TYPE_ORDER,
    ChargeDefinition,
    ChargeType,
    Frequency,
    RepartitionKey,
)
from copro.models.charge_exclusion import ChargeExclusion
from copro.models.custom_quota import CustomQuota
from copro.models.owner import Owner
from copro.services.allocation_service import fits_scale, to_cents
from copro.services.audit_service import AuditAction, AuditEntity, AuditService
from copro.services.building_service import BuildingService
from copro.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "type",
    "libelle",
    "description",
    "montant_annuel",
    "frequence",
    "cle_repartition",
    "actif",
    "date_debut",
    "date_fin",
    "exercise_id",
}
NON_NULLABLE_FIELDS = {"type", "libelle", "montant_annuel", "frequence", "cle_repartition", "actif"}
QUOTE_PART_PLACES = 4


class ExclusionInput(NamedTuple):
    """Owner excluded from a special charge."""

    owner_id: int
    motif: str | None = None


class QuotaInput(NamedTuple):
    """Quote-part of an owner in a custom charge."""

    owner_id: int
    quote_part: Decimal


def _coerce_enum(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field} {value!r}; expected one of: {allowed}") from e


def _coerce_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid montant_annuel {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid montant_annuel {value!r}")
    if amount < 0:
        raise ValidationError("montant_annuel must not be negative")
    if amount != to_cents(amount):
        raise ValidationError("montant_annuel must have at most 2 decimal places")
    return to_cents(amount)


def _audit_value(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _check_window(date_debut: date | None, date_fin: date | None) -> None:
    if date_debut is not None and date_fin is not None and date_fin < date_debut:
        raise ValidationError("date_fin must not be before date_debut")


class ChargeService:
    """Service for recurring charge CRUD operations."""

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session
        self.buildings = BuildingService(db_session)

    def get_charge(self, charge_id: int, building_id: int | None = None) -> ChargeDefinition:
        """Get charge by ID, optionally checking it belongs to a building.

        Raises:
            NotFoundError: If the charge does not exist (in this building)
        """
        query = self.db.query(ChargeDefinition).filter(ChargeDefinition.id == charge_id)
        if building_id is not None:
            query = query.filter(ChargeDefinition.building_id == building_id)
        charge = query.first()
        if charge is None:
            raise NotFoundError(f"Charge {charge_id} not found")
        return charge

    def list_charges(self, building_id: int) -> list[ChargeDefinition]:
        """List a building's charges in catalog order (type order, newest first).

        Raises:
            NotFoundError: If the building does not exist
        """
        self.buildings.get_building(building_id)
        charges = (
            self.db.query(ChargeDefinition)
            .filter(ChargeDefinition.building_id == building_id)
            .order_by(ChargeDefinition.created_at.desc(), ChargeDefinition.id.desc())
            .all()
        )
        return sorted(charges, key=lambda charge: CHARGE_TYPE_ORDER[charge.type])

    def create_charge(
        self,
        building_id: int,
        *,
        type: ChargeType | str,
        libelle: str,
        montant_annuel: Decimal,
        description: str | None = None,
        frequence: Frequency | str = Frequency.TRIMESTRIEL,
        cle_repartition: RepartitionKey | str = RepartitionKey.MILLIEMES,
        actif: bool = True,
        date_debut: date | None = None,
        date_fin: date | None = None,
        exercise_id: int | None = None,
        exclusions: Iterable[ExclusionInput] | None = None,
        quotes_parts: Iterable[QuotaInput] | None = None,
        actor_id: int | None = None,
    ) -> ChargeDefinition:
        """Create a recurring charge with its exclusions and quotes-parts.

        Args:
            building_id: Owning building
            type: Charge type
            libelle: Label shown to owners
            montant_annuel: Annual amount (>= 0, cents precision)
            description: Free text
            frequence: Billing frequency (default trimestriel)
            cle_repartition: Repartition key (default milliemes)
            actif: Whether the charge is billed
            date_debut: Optional start of validity
            date_fin: Optional end of validity (>= date_debut)
            exercise_id: Optional accounting exercise scope
            exclusions: Owners excluded (charges_speciales only)
            quotes_parts: Owner quotas (custom key only)
            actor_id: Administrator performing the action

        Returns:
            Created ChargeDefinition

        Raises:
            NotFoundError: If building, exercise or a referenced owner does not exist
            ValidationError: If any field is invalid
        """
        self.buildings.get_building(building_id)

        charge_type = _coerce_enum(ChargeType, type, "type")
        frequency = _coerce_enum(Frequency, frequence, "frequence")
        key = _coerce_enum(RepartitionKey, cle_repartition, "cle_repartition")
        amount = _coerce_amount(montant_annuel)
        _check_window(date_debut, date_fin)
        if not libelle or not libelle.strip():
            raise ValidationError("libelle must not be empty")
        if exercise_id is not None:
            self.buildings.get_exercise(building_id, exercise_id)

        exclusion_rows = self._build_exclusions(building_id, charge_type, exclusions or [])
        quota_rows = self._build_quotas(building_id, key, quotes_parts or [])

        charge = ChargeDefinition(
            building_id=building_id,
            exercise_id=exercise_id,
            type=charge_type,
            libelle=libelle.strip(),
            description=description,
            montant_annuel=amount,
            frequence=frequency,
            cle_repartition=key,
            actif=actif,
            date_debut=date_debut,
            date_fin=date_fin,
        )
        charge.exclusions.extend(exclusion_rows)
        charge.quotas.extend(quota_rows)

        try:
            self.db.add(charge)
            self.db.flush()
            AuditService.log(
                self.db,
                AuditEntity.CHARGE,
                charge.id,
                AuditAction.CREATE,
                actor_id,
                {"type": charge_type.value, "montant_annuel": str(amount)},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(charge)

        logger.info(
            "Created charge: id=%d, building_id=%d, type=%s, montant_annuel=%s, exclusions=%d, quotas=%d",
            charge.id,
            building_id,
            charge_type.value,
            amount,
            len(exclusion_rows),
            len(quota_rows),
        )
        return charge

    def update_charge(
        self,
        building_id: int,
        charge_id: int,
        *,
        exclusions: Iterable[ExclusionInput] | None = None,
        quotes_parts: Iterable[QuotaInput] | None = None,
        actor_id: int | None = None,
        **fields: Any,
    ) -> ChargeDefinition:
        """Partially update a charge.

        Only the given fields change. exclusions / quotes_parts, when given (even
        empty), replace the existing sets. Exclusions are dropped when the charge
        stops being charges_speciales, quotas when its key stops being custom.

        Raises:
            NotFoundError: If the charge is not in this building
            ValidationError: If a field is unknown or invalid
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown charge fields: {', '.join(sorted(unknown))}")
        nulls = sorted(name for name in NON_NULLABLE_FIELDS & set(fields) if fields[name] is None)
        if nulls:
            raise ValidationError(f"Charge fields cannot be null: {', '.join(nulls)}")

        charge = self.get_charge(charge_id, building_id)

        charge_type = _coerce_enum(ChargeType, fields.get("type", charge.type), "type")
        frequency = _coerce_enum(Frequency, fields.get("frequence", charge.frequence), "frequence")
        key = _coerce_enum(
            RepartitionKey, fields.get("cle_repartition", charge.cle_repartition), "cle_repartition"
        )
        amount = _coerce_amount(fields.get("montant_annuel", charge.montant_annuel))
        date_debut = fields.get("date_debut", charge.date_debut)
        date_fin = fields.get("date_fin", charge.date_fin)
        _check_window(date_debut, date_fin)
        libelle = fields.get("libelle", charge.libelle)
        if not libelle or not libelle.strip():
            raise ValidationError("libelle must not be empty")
        exercise_id = fields.get("exercise_id", charge.exercise_id)
        if exercise_id is not None:
            self.buildings.get_exercise(building_id, exercise_id)

        exclusion_rows = None
        if exclusions is not None:
            exclusion_rows = self._build_exclusions(building_id, charge_type, exclusions)
        quota_rows = None
        if quotes_parts is not None:
            quota_rows = self._build_quotas(building_id, key, quotes_parts)

        try:
            charge.type = charge_type
            charge.frequence = frequency
            charge.cle_repartition = key
            charge.montant_annuel = amount
            charge.date_debut = date_debut
            charge.date_fin = date_fin
            charge.libelle = libelle.strip()
            charge.exercise_id = exercise_id
            if "description" in fields:
                charge.description = fields["description"]
            if "actif" in fields:
                charge.actif = fields["actif"]

            if exclusion_rows is not None or charge_type != ChargeType.CHARGES_SPECIALES:
                charge.exclusions.clear()
            if quota_rows is not None or key != RepartitionKey.CUSTOM:
                charge.quotas.clear()
            # Deletes must hit the database before re-inserting the same (charge, owner) pairs
            self.db.flush()
            if exclusion_rows:
                charge.exclusions.extend(exclusion_rows)
            if quota_rows:
                charge.quotas.extend(quota_rows)

            AuditService.log(
                self.db,
                AuditEntity.CHARGE,
                charge.id,
                AuditAction.UPDATE,
                actor_id,
                {name: _audit_value(value) for name, value in fields.items()},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(charge)

        logger.info("Updated charge %d: fields=%s", charge.id, sorted(fields))
        return charge

    def delete_charge(self, building_id: int, charge_id: int, actor_id: int | None = None) -> None:
        """Delete a charge with its exclusions, quotas and unpaid billing calls.

        Raises:
            NotFoundError: If the charge is not in this building
            ConflictError: If any billing call of the charge has received a payment
        """
        charge = self.get_charge(charge_id, building_id)

        paid_calls = (
            self.db.query(BillingCall)
            .filter(BillingCall.charge_id == charge_id, BillingCall.montant_paye > 0)
            .count()
        )
        if paid_calls:
            logger.warning(
                "Refused to delete charge %d: %d billing calls carry payments", charge_id, paid_calls
            )
            raise ConflictError(
                f"Charge {charge_id} has {paid_calls} billing calls with payments; deactivate it instead"
            )

        try:
            self.db.delete(charge)
            AuditService.log(self.db, AuditEntity.CHARGE, charge_id, AuditAction.DELETE, actor_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Deleted charge %d from building %d", charge_id, building_id)

    def _owner_ids(self, building_id: int) -> set[int]:
        rows = self.db.query(Owner.id).filter(Owner.building_id == building_id).all()
        return {row[0] for row in rows}

    def _build_exclusions(
        self,
        building_id: int,
        charge_type: ChargeType,
        exclusions: Iterable[ExclusionInput],
    ) -> list[ChargeExclusion]:
        exclusions = [ExclusionInput(*exclusion) for exclusion in exclusions]
        if not exclusions:
            return []
        if charge_type != ChargeType.CHARGES_SPECIALES:
            raise ValidationError("Exclusions are only allowed on charges_speciales charges")

        owner_ids = self._owner_ids(building_id)
        seen = set()
        rows = []
        for exclusion in exclusions:
            if exclusion.owner_id not in owner_ids:
                raise NotFoundError(f"Owner {exclusion.owner_id} not found in building {building_id}")
            if exclusion.owner_id in seen:
                raise ValidationError(f"Owner {exclusion.owner_id} is excluded twice")
            seen.add(exclusion.owner_id)
            rows.append(ChargeExclusion(owner_id=exclusion.owner_id, motif=exclusion.motif))
        return rows

    def _build_quotas(
        self,
        building_id: int,
        key: RepartitionKey,
        quotes_parts: Iterable[QuotaInput],
    ) -> list[CustomQuota]:
        quotes_parts = [QuotaInput(*quota) for quota in quotes_parts]
        if not quotes_parts:
            return []
        if key != RepartitionKey.CUSTOM:
            raise ValidationError("Quotes-parts are only allowed with the custom repartition key")

        owner_ids = self._owner_ids(building_id)
        seen = set()
        rows = []
        for quota in quotes_parts:
            if quota.owner_id not in owner_ids:
                raise NotFoundError(f"Owner {quota.owner_id} not found in building {building_id}")
            if quota.owner_id in seen:
                raise ValidationError(f"Owner {quota.owner_id} has two quotes-parts")
            try:
                quote_part = Decimal(str(quota.quote_part))
            except InvalidOperation as e:
                raise ValidationError(f"Invalid quote_part {quota.quote_part!r}") from e
            if not quote_part.is_finite() or quote_part <= 0:
                raise ValidationError("quote_part must be positive")
            if not fits_scale(quote_part, QUOTE_PART_PLACES):
                raise ValidationError(
                    f"quote_part must have at most {QUOTE_PART_PLACES} decimal places"
                )
            seen.add(quota.owner_id)
            rows.append(CustomQuota(owner_id=quota.owner_id, quote_part=quote_part))
        return rows


__all__ = [
    "ChargeService",
    "ExclusionInput",
    "NON_NULLABLE_FIELDS",
    "QuotaInput",
    "UPDATABLE_FIELDS",
]
