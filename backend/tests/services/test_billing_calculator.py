"""
Tests for the tiered charge calculator.
"""
import pytest
from decimal import Decimal

from waterbill.exceptions import InvalidInput
from waterbill.models.ontology import BillItemType
from waterbill.services.billing_calculator import TariffRates, calculate_charge


@pytest.fixture
def rates():
    return TariffRates(
        rate_k1=Decimal("1200"),
        rate_k2=Decimal("3000"),
        limit_k1=40,
        admin_fee=Decimal("3000"),
    )


class TestCalculateCharge:
    """calculate_charge()"""

    def test_usage_above_limit_splits_into_tiers(self, rates):
        charge = calculate_charge(45, rates)

        assert charge.k1.usage == 40
        assert charge.k1.amount == Decimal("48000.00")
        assert charge.k2.usage == 5
        assert charge.k2.amount == Decimal("15000.00")
        assert charge.total == Decimal("66000.00")

    def test_lines_are_admin_k1_k2_in_order(self, rates):
        charge = calculate_charge(10, rates)

        assert [line.type for line in charge.lines] == [
            BillItemType.ADMIN_FEE, BillItemType.K1, BillItemType.K2
        ]
        admin = charge.lines[0]
        assert admin.usage == 0
        assert admin.rate == Decimal("3000.00")
        assert admin.amount == Decimal("3000.00")

    def test_usage_below_limit_has_empty_k2(self, rates):
        charge = calculate_charge(12, rates)

        assert charge.k1.usage == 12
        assert charge.k2.usage == 0
        assert charge.k2.amount == Decimal("0.00")
        assert charge.total == Decimal("17400.00")

    def test_usage_exactly_at_limit(self, rates):
        charge = calculate_charge(40, rates)

        assert charge.k1.usage == 40
        assert charge.k2.usage == 0
        assert charge.total == Decimal("51000.00")

    def test_zero_usage_bills_admin_fee_only(self, rates):
        charge = calculate_charge(0, rates)

        assert charge.k1.amount == Decimal("0.00")
        assert charge.k2.amount == Decimal("0.00")
        assert charge.total == Decimal("3000.00")

    @pytest.mark.parametrize("usage", [0, 1, 39, 40, 41, 100, 12345])
    def test_tiers_cover_usage_and_total_adds_up(self, rates, usage):
        charge = calculate_charge(usage, rates)

        assert charge.k1.usage + charge.k2.usage == usage
        expected = (rates.admin_fee + charge.k1.usage * rates.rate_k1
                    + charge.k2.usage * rates.rate_k2)
        assert charge.total == expected

    def test_fractional_rates_are_kept_to_cents(self):
        rates = TariffRates(
            rate_k1=Decimal("1200.50"),
            rate_k2=Decimal("3000.25"),
            limit_k1=10,
            admin_fee=Decimal("2500.10"),
        )
        charge = calculate_charge(11, rates)

        assert charge.k1.amount == Decimal("12005.00")
        assert charge.k2.amount == Decimal("3000.25")
        assert charge.total == Decimal("17505.35")

    def test_sub_cent_rates_price_at_the_stored_rate(self):
        rates = TariffRates(
            rate_k1=Decimal("1200.006"),
            rate_k2=Decimal("3000.004"),
            limit_k1=10,
            admin_fee=Decimal("3000"),
        )
        charge = calculate_charge(13, rates)

        assert charge.k1.rate == Decimal("1200.01")
        assert charge.k2.rate == Decimal("3000.00")
        for line in charge.lines[1:]:
            assert line.amount == line.usage * line.rate
        assert charge.k1.amount == Decimal("12000.10")
        assert charge.k2.amount == Decimal("9000.00")

    def test_negative_usage_rejected(self, rates):
        with pytest.raises(InvalidInput):
            calculate_charge(-1, rates)

    def test_negative_rate_rejected(self):
        rates = TariffRates(
            rate_k1=Decimal("-1"),
            rate_k2=Decimal("3000"),
            limit_k1=40,
            admin_fee=Decimal("3000"),
        )
        with pytest.raises(InvalidInput):
            calculate_charge(5, rates)
