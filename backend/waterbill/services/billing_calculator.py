"""
Tiered water charge calculator
Pure function of usage and tariff; no I/O
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List
from waterbill.exceptions import InvalidInput
from waterbill.models.ontology import BillItemType

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class TariffRates:
    """Tariff in force for one calculation"""
    rate_k1: Decimal
    rate_k2: Decimal
    limit_k1: int
    admin_fee: Decimal


@dataclass(frozen=True)
class ChargeLine:
    type: BillItemType
    usage: int
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class ChargeBreakdown:
    """Lines in ADMIN_FEE, K1, K2 order plus their total"""
    lines: List[ChargeLine]
    total: Decimal

    @property
    def k1(self) -> ChargeLine:
        return self.lines[1]

    @property
    def k2(self) -> ChargeLine:
        return self.lines[2]


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENTS)


def calculate_charge(usage: int, rates: TariffRates) -> ChargeBreakdown:
    """
    Split usage into K1/K2 tiers and price it

    K1 covers the first limit_k1 units, K2 everything above. The admin fee
    is a flat line with zero usage.
    """
    if usage < 0:
        raise InvalidInput(f"usage must be 0 or greater, got {usage}")
    for name in ("rate_k1", "rate_k2", "limit_k1", "admin_fee"):
        if getattr(rates, name) < 0:
            raise InvalidInput(f"{name} must be 0 or greater")

    k1_usage = min(usage, rates.limit_k1)
    k2_usage = max(usage - rates.limit_k1, 0)

    # Amounts are priced at the stored, cent-rounded rate
    admin_fee = _money(rates.admin_fee)
    k1_rate = _money(rates.rate_k1)
    k2_rate = _money(rates.rate_k2)
    k1_amount = _money(k1_usage * k1_rate)
    k2_amount = _money(k2_usage * k2_rate)

    lines = [
        ChargeLine(BillItemType.ADMIN_FEE, 0, admin_fee, admin_fee),
        ChargeLine(BillItemType.K1, k1_usage, k1_rate, k1_amount),
        ChargeLine(BillItemType.K2, k2_usage, k2_rate, k2_amount),
    ]
    return ChargeBreakdown(lines=lines, total=admin_fee + k1_amount + k2_amount)
