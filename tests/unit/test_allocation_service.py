"""Unit tests for allocation service."""

from decimal import Decimal

import pytest

from copro.models.charge import RepartitionKey
from copro.services.allocation_service import AllocationService, to_cents

class TestToCents:
    """Half-up rounding to the cent."""

    def test_rounds_half_up(self):
        assert to_cents(Decimal("0.005")) == Decimal("0.01")
        assert to_cents(Decimal("2.675")) == Decimal("2.68")
        assert to_cents(Decimal("2.674")) == Decimal("2.67")

    def test_quantizes_integers(self):
        assert to_cents(300) == Decimal("300.00")
        assert str(to_cents(Decimal("300"))) == "300.00"

class TestAllocationService:
    """Test allocation service methods."""

    @pytest.fixture
    def service(self):
        """Create allocation service instance."""
        return AllocationService()

    def test_distribute_with_remainder_proportional(self, service):
        """Test proportional distribution without remainder."""
        total = Decimal("100.00")
        shares = {1: Decimal("3"), 2: Decimal("3"), 3: Decimal("4")}

        result = service.distribute_with_remainder(total, shares)

        assert result == {1: Decimal("30.00"), 2: Decimal("30.00"), 3: Decimal("40.00")}
        assert sum(result.values()) == total

    def test_distribute_with_remainder_equal_weights_lowest_id_wins(self, service):
        """100 / 3 leaves one cent; with equal weights it goes to the lowest owner id."""
        shares = {5: Decimal("1"), 2: Decimal("1"), 9: Decimal("1")}

        result = service.distribute_with_remainder(Decimal("100.00"), shares)

        assert result == {5: Decimal("33.33"), 2: Decimal("33.34"), 9: Decimal("33.33")}

    def test_distribute_with_remainder_positive_remainder_to_largest(self, service):
        """A positive remainder goes to the largest weight."""
        shares = {1: Decimal("1"), 2: Decimal("1"), 3: Decimal("1"), 4: Decimal("2")}

        # 10 / 5 = 2 per unit, no remainder
        assert sum(service.distribute_with_remainder(Decimal("10.00"), shares).values()) == Decimal("10.00")

        # 0.07 / 5: 0.014 -> 0.01 x3, 0.028 -> 0.02; sum 0.05, remainder +0.02 to owner 4
        result = service.distribute_with_remainder(Decimal("0.07"), shares)
        assert result == {
            1: Decimal("0.01"),
            2: Decimal("0.01"),
            3: Decimal("0.01"),
            4: Decimal("0.04"),
        }

    def test_distribute_with_remainder_never_negative(self, service):
        """Shares are rounded down, so the remainder only ever adds to the largest weight."""
        shares = {1: Decimal("1"), 2: Decimal("1"), 3: Decimal("2")}

        # 0.10 / 4 = 0.025 -> 0.02, 0.02, 0.05; sum 0.09, remainder +0.01 to owner 3
        result = service.distribute_with_remainder(Decimal("0.10"), shares)

        assert result == {1: Decimal("0.02"), 2: Decimal("0.02"), 3: Decimal("0.06")}
        assert sum(result.values()) == Decimal("0.10")

    def test_tiny_amount_across_many_owners(self, service):
        """0.05 over 10 equal owners: every share rounds to 0 and the lowest id takes it all."""
        result = service.allocate_equal(Decimal("0.05"), range(1, 11))

        assert result[1] == Decimal("0.05")
        assert all(result[owner_id] == Decimal("0.00") for owner_id in range(2, 11))
        assert sum(result.values()) == Decimal("0.05")

    def test_many_round_ups_do_not_overdraw(self, service):
        """100.10 over 4 equal owners: 25.025 each would round up; the spare cents go to the lowest id."""
        result = service.allocate_equal(Decimal("100.10"), [1, 2, 3, 4])

        assert result == {
            1: Decimal("25.04"),
            2: Decimal("25.02"),
            3: Decimal("25.02"),
            4: Decimal("25.02"),
        }
        assert sum(result.values()) == Decimal("100.10")

    def test_distribute_with_remainder_zero_money_loss(self, service):
        """Test that remainder distribution loses no money."""
        total = Decimal("1000.00")
        shares = {i: Decimal(str(i)) for i in range(1, 11)}

        result = service.distribute_with_remainder(total, shares)

        assert sum(result.values()) == total
        assert all(amount >= Decimal(0) for amount in result.values())

    def test_distribute_with_remainder_milliemes_example(self, service):
        """Three owners with 500/300/200 millièmes share 1200 exactly."""
        shares = {1: Decimal("500"), 2: Decimal("300"), 3: Decimal("200")}

        result = service.distribute_with_remainder(Decimal("1200.00"), shares)

        assert result == {1: Decimal("600.00"), 2: Decimal("360.00"), 3: Decimal("240.00")}

    def test_distribute_with_remainder_empty_shares(self, service):
        """Test with empty shares dictionary."""
        assert service.distribute_with_remainder(Decimal("100.00"), {}) == {}

    def test_distribute_with_remainder_zero_shares(self, service):
        """Nothing is allocated when no weight is positive."""
        shares = {1: Decimal(0), 2: Decimal(0), 3: Decimal(0)}
        result = service.distribute_with_remainder(Decimal("100.00"), shares)

        assert result == {1: Decimal("0.00"), 2: Decimal("0.00"), 3: Decimal("0.00")}

    def test_allocate_equal(self, service):
        """Equal split ignores millièmes."""
        result = service.allocate_equal(Decimal("100.00"), [1, 2, 3])

        assert result == {1: Decimal("33.34"), 2: Decimal("33.33"), 3: Decimal("33.33")}

    def test_allocate_custom_owner_without_quota_gets_zero(self, service):
        """Quota holders absorb the whole amount."""
        result = service.allocate_custom(
            Decimal("300.00"), [1, 2, 3], {1: Decimal("2"), 2: Decimal("1")}
        )

        assert result == {1: Decimal("200.00"), 2: Decimal("100.00"), 3: Decimal("0.00")}

    def test_allocate_custom_ignores_quotas_of_non_liable_owners(self, service):
        """A quota of an owner outside the liable set is not counted."""
        result = service.allocate_custom(
            Decimal("100.00"), [1, 2], {1: Decimal("1"), 2: Decimal("1"), 3: Decimal("8")}
        )

        assert result == {1: Decimal("50.00"), 2: Decimal("50.00")}

    def test_allocate_dispatches_on_key(self, service):
        """allocate() picks the rule matching the repartition key."""
        milliemes = {1: Decimal("750"), 2: Decimal("250")}

        assert service.allocate(Decimal("100"), RepartitionKey.MILLIEMES, milliemes) == {
            1: Decimal("75.00"),
            2: Decimal("25.00"),
        }
        assert service.allocate(Decimal("100"), RepartitionKey.EGALITAIRE, milliemes) == {
            1: Decimal("50.00"),
            2: Decimal("50.00"),
        }
        assert service.allocate(
            Decimal("100"), RepartitionKey.CUSTOM, milliemes, {2: Decimal("1")}
        ) == {1: Decimal("0.00"), 2: Decimal("100.00")}

    def test_allocate_custom_without_quotas_allocates_nothing(self, service):
        result = service.allocate(Decimal("100"), RepartitionKey.CUSTOM, {1: Decimal("500")})

        assert result == {1: Decimal("0.00")}

    def test_allocate_unknown_key(self, service):
        """Unknown keys are rejected."""
        with pytest.raises(ValueError, match="Unknown repartition key"):
            service.allocate(Decimal("100"), "tantiemes", {1: Decimal("1")})
