"""Repartition of a building's active recurring charges across its owners.

For each active charge the annual amount is split across the liable owners
(owners minus exclusions on special charges) using the charge's repartition key.
Shares are rounded to the cent and the rounding remainder goes to the liable
owner with the largest weight, so every charge reconciles exactly.

The result is computed on demand and never persisted or cached.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Sequence

from sqlalchemy.orm import Session

from copro.models.charge import ChargeDefinition, ChargeType, RepartitionKey
from copro.models.owner import Owner
from copro.services.allocation_service import AllocationService, to_cents
from copro.services.building_service import BuildingService

logger = logging.getLogger(__name__)


class ChargeLine(NamedTuple):
    """One owner's share of one charge."""

    charge_id: int
    type: ChargeType
    libelle: str
    frequence: str
    montant_annuel: Decimal
    montant_periodique: Decimal


class OwnerRepartition(NamedTuple):
    """Annual and monthly liability of one owner."""

    proprietaire_id: int
    prenom: str | None
    nom: str
    milliemes: Decimal
    total_annuel: Decimal
    total_mensuel: Decimal
    charges: list[ChargeLine]


class ChargeAllocation(NamedTuple):
    """Reconciliation of one charge: what was allocated and what could not be."""

    charge_id: int
    montant_annuel: Decimal
    allocated: Decimal
    unallocated: Decimal


class RepartitionResult(NamedTuple):
    """Per-owner breakdown plus nominal per-type totals."""

    total_milliemes: Decimal
    repartition: list[OwnerRepartition]
    totaux: dict[str, Decimal]
    nb_proprietaires: int
    nb_charges_actives: int
    charges: list[ChargeAllocation]


def nominal_totals(charges: Sequence[ChargeDefinition]) -> dict[str, Decimal]:
    """Sum annual amounts by charge type, ignoring exclusions.

    Every charge type is present (zero when unused), plus a grand "total".
    """
    totaux = {charge_type.value: Decimal("0.00") for charge_type in ChargeType}
    for charge in charges:
        totaux[ChargeType(charge.type).value] += Decimal(charge.montant_annuel)
    totaux["total"] = sum(totaux.values(), Decimal("0.00"))
    return totaux


class RepartitionService:
    """Apportionment engine for recurring charges."""

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session
        self.buildings = BuildingService(db_session)
        self.allocation = AllocationService()

    def active_charges(
        self,
        building_id: int,
        as_of: date,
        exercise_id: int | None = None,
    ) -> list[ChargeDefinition]:
        """Charges of a building that are active on as_of.

        Args:
            building_id: Building ID
            as_of: Reference date for the validity window
            exercise_id: Restrict to this exercise (charges without exercise always count)

        Returns:
            Active ChargeDefinition list ordered by ID
        """
        charges = (
            self.db.query(ChargeDefinition)
            .filter(
                ChargeDefinition.building_id == building_id,
                ChargeDefinition.actif.is_(True),
            )
            .order_by(ChargeDefinition.id)
            .all()
        )
        active = [charge for charge in charges if charge.is_active_on(as_of)]
        if exercise_id is not None:
            active = [
                charge
                for charge in active
                if charge.exercise_id is None or charge.exercise_id == exercise_id
            ]
        return active

    def allocate_charge(
        self,
        charge: ChargeDefinition,
        owners: Sequence[Owner],
        amount: Decimal | None = None,
    ) -> dict[int, Decimal]:
        """Split an amount of a charge across its liable owners.

        Args:
            charge: Charge whose key, exclusions and quotas apply
            owners: All owners of the building
            amount: Amount to split (default: the charge's annual amount)

        Returns:
            Dict mapping each liable owner_id to its share; excluded owners are absent
        """
        if amount is None:
            amount = Decimal(charge.montant_annuel)

        excluded = charge.excluded_owner_ids()
        liable = {owner.id: Decimal(owner.milliemes or 0) for owner in owners if owner.id not in excluded}

        quotas = None
        if charge.cle_repartition == RepartitionKey.CUSTOM:
            quotas = {quota.owner_id: Decimal(quota.quote_part) for quota in charge.quotas}

        return self.allocation.allocate(amount, RepartitionKey(charge.cle_repartition), liable, quotas)

    def compute_repartition(
        self,
        building_id: int,
        as_of: date | None = None,
        exercise_id: int | None = None,
    ) -> RepartitionResult:
        """Compute each owner's annual and monthly liability for a building.

        Args:
            building_id: Building ID
            as_of: Date deciding which charges are active (default: today)
            exercise_id: Optional exercise restriction

        Returns:
            RepartitionResult; all zeros when the building has no owners or no active charges

        Raises:
            NotFoundError: If the building does not exist
        """
        as_of = as_of or date.today()
        self.buildings.get_building(building_id)

        owners = (
            self.db.query(Owner)
            .filter(Owner.building_id == building_id)
            .order_by(Owner.nom, Owner.prenom, Owner.id)
            .all()
        )
        charges = self.active_charges(building_id, as_of, exercise_id)

        totals = {owner.id: Decimal("0.00") for owner in owners}
        lines: dict[int, list[ChargeLine]] = {owner.id: [] for owner in owners}
        allocations = []

        for charge in charges:
            shares = self.allocate_charge(charge, owners)
            allocated = sum(shares.values(), Decimal("0.00"))
            allocations.append(
                ChargeAllocation(
                    charge_id=charge.id,
                    montant_annuel=Decimal(charge.montant_annuel),
                    allocated=allocated,
                    unallocated=Decimal(charge.montant_annuel) - allocated,
                )
            )
            if allocated != Decimal(charge.montant_annuel):
                logger.warning(
                    "Charge %d could not be fully allocated: %s of %s",
                    charge.id,
                    allocated,
                    charge.montant_annuel,
                )

            divisor = charge.frequence.divisor
            for owner_id, share in shares.items():
                if share <= 0:
                    continue
                totals[owner_id] += share
                lines[owner_id].append(
                    ChargeLine(
                        charge_id=charge.id,
                        type=charge.type,
                        libelle=charge.libelle,
                        frequence=charge.frequence.value,
                        montant_annuel=share,
                        montant_periodique=to_cents(share / divisor),
                    )
                )

        repartition = [
            OwnerRepartition(
                proprietaire_id=owner.id,
                prenom=owner.prenom,
                nom=owner.nom,
                milliemes=Decimal(owner.milliemes or 0),
                total_annuel=totals[owner.id],
                total_mensuel=to_cents(totals[owner.id] / 12),
                charges=lines[owner.id],
            )
            for owner in owners
        ]

        logger.debug(
            "Computed repartition: building_id=%d as_of=%s owners=%d charges=%d",
            building_id,
            as_of,
            len(owners),
            len(charges),
        )

        return RepartitionResult(
            total_milliemes=sum((Decimal(owner.milliemes or 0) for owner in owners), Decimal("0")),
            repartition=repartition,
            totaux=nominal_totals(charges),
            nb_proprietaires=len(owners),
            nb_charges_actives=len(charges),
            charges=allocations,
        )


__all__ = [
    "RepartitionService",
    "RepartitionResult",
    "OwnerRepartition",
    "ChargeLine",
    "ChargeAllocation",
    "nominal_totals",
]
