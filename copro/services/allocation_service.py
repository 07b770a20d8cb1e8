"""Allocation service for distributing a charge amount across owners.

Supports repartition keys:
- MILLIEMES: Distribute by owner millième share
- EGALITAIRE: Distribute equally across liable owners
- CUSTOM: Distribute by explicit quote-parts; owners without one receive nothing
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Mapping

from copro.models.charge import RepartitionKey

CENT = Decimal("0.01")


def to_cents(amount) -> Decimal:
    """Round an amount half-up to the cent."""
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def fits_scale(value: Decimal, places: int) -> bool:
    """Whether a finite decimal has at most `places` significant decimal places."""
    return value.normalize().as_tuple().exponent >= -places


class AllocationService:
    """Charge allocation engine with multiple repartition keys."""

    def distribute_with_remainder(
        self,
        total_amount: Decimal,
        shares: Mapping[int, Decimal],
    ) -> Dict[int, Decimal]:
        """Distribute amount by shares, giving the rounding remainder to the largest share.

        Ensures: sum(result) == total_amount whenever at least one share is positive,
        and no allocation is negative for a non-negative total.

        Algorithm:
        1. Calculate per-unit allocation: total / sum(shares)
        2. Allocate: amount_per_owner = per_unit * share_weight (rounded down to the cent)
        3. Calculate remainder (never negative for a non-negative total)
        4. Add the whole remainder to the largest share holder (tie-break: lowest owner id)

        Args:
            total_amount: Total to distribute (Decimal)
            shares: Dict mapping owner_id to share weight (Decimal)

        Returns:
            Dict mapping owner_id to allocated amount (Decimal)
        """
        if not shares:
            return {}

        total = to_cents(total_amount)
        share_dict = {k: Decimal(str(v)) for k, v in shares.items()}

        total_shares = sum(share_dict.values())
        if total_shares <= 0:
            return {k: Decimal("0.00") for k in share_dict}

        allocations = {}
        allocated_total = Decimal("0.00")
        for owner_id, share_weight in share_dict.items():
            allocated = (total * share_weight / total_shares).quantize(CENT, rounding=ROUND_DOWN)
            allocations[owner_id] = allocated
            allocated_total += allocated

        remainder = total - allocated_total
        if remainder != 0:
            largest_owner = min(share_dict, key=lambda owner_id: (-share_dict[owner_id], owner_id))
            allocations[largest_owner] += remainder

        return allocations

    def allocate_proportional(
        self,
        total_amount: Decimal,
        owner_milliemes: Mapping[int, Decimal],
    ) -> Dict[int, Decimal]:
        """Allocate by millième share.

        Args:
            total_amount: Total charge to allocate
            owner_milliemes: Dict mapping owner_id to millièmes

        Returns:
            Dict mapping owner_id to allocated amount
        """
        return self.distribute_with_remainder(total_amount, owner_milliemes)

    def allocate_equal(
        self,
        total_amount: Decimal,
        owner_ids: Iterable[int],
    ) -> Dict[int, Decimal]:
        """Allocate equally across owners; the remainder goes to the lowest owner id."""
        return self.distribute_with_remainder(
            total_amount, {owner_id: Decimal(1) for owner_id in owner_ids}
        )

    def allocate_custom(
        self,
        total_amount: Decimal,
        owner_ids: Iterable[int],
        quotas: Mapping[int, Decimal],
    ) -> Dict[int, Decimal]:
        """Allocate by quote-part among owners holding one.

        Owners without a quota receive 0. Quotas are normalized over the liable
        owners that hold one, so they need not sum to any fixed total.
        """
        weights = {owner_id: Decimal(str(quotas.get(owner_id, 0))) for owner_id in owner_ids}
        return self.distribute_with_remainder(total_amount, weights)

    def allocate(
        self,
        total_amount: Decimal,
        repartition_key: RepartitionKey,
        owner_milliemes: Mapping[int, Decimal],
        quotas: Mapping[int, Decimal] | None = None,
    ) -> Dict[int, Decimal]:
        """Allocate a charge using its repartition key.

        Args:
            total_amount: Amount to allocate
            repartition_key: MILLIEMES, EGALITAIRE or CUSTOM
            owner_milliemes: Liable owners (owner_id -> millièmes)
            quotas: Quote-parts for CUSTOM (owner_id -> quote_part)

        Returns:
            Dict mapping every liable owner_id to allocated amount

        Raises:
            ValueError: If repartition key is unknown
        """
        if repartition_key == RepartitionKey.MILLIEMES:
            return self.allocate_proportional(total_amount, owner_milliemes)

        elif repartition_key == RepartitionKey.EGALITAIRE:
            return self.allocate_equal(total_amount, owner_milliemes.keys())

        elif repartition_key == RepartitionKey.CUSTOM:
            return self.allocate_custom(total_amount, owner_milliemes.keys(), quotas or {})

        else:
            raise ValueError(f"Unknown repartition key: {repartition_key}")


__all__ = ["AllocationService", "CENT", "fits_scale", "to_cents"]
