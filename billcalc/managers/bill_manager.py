import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

from billcalc.configs.billing import BillingConfig, BillingError, RateTier

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]


class InvalidUsage(BillingError):
    pass


def _d(value: Number) -> Decimal:
    """Exact decimal form of a config or usage number."""
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _display(value: Decimal, places: int) -> float:
    return float(value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def describe_tier(tier: RateTier, previous_limit: Number = 0) -> str:
    """Return a human friendly description of a tier."""
    if tier.unbounded:
        return f"Units above {previous_limit} at {tier.rate}"
    return f"Units {previous_limit}-{tier.usage_limit} at {tier.rate}"


@dataclass(frozen=True)
class TierCharge:
    tier: RateTier
    consumed: Decimal
    subtotal: Decimal
    description: str = ""


@dataclass(frozen=True)
class BillResult:
    usage: Decimal
    tier_breakdown: Tuple[TierCharge, ...]
    unbilled_usage: Decimal
    demand_charge: Decimal
    pre_tax_total: Decimal
    vat_amount: Decimal
    total: Decimal

    def to_dict(self, places: Optional[int] = 2) -> Dict[str, Any]:
        """Render the bill for display. Rounding only happens here."""
        def fmt(v: Decimal) -> float:
            return float(v) if places is None else _display(v, places)

        return {
            "usage": float(self.usage),
            "breakdown": [
                {
                    "usage": float(c.consumed),
                    "rate": c.tier.rate,
                    "cost": fmt(c.subtotal),
                    "description": c.description,
                }
                for c in self.tier_breakdown
            ],
            "unbilledUsage": float(self.unbilled_usage),
            "demandCharge": fmt(self.demand_charge),
            "preTaxTotal": fmt(self.pre_tax_total),
            "vat": fmt(self.vat_amount),
            "total": fmt(self.total),
        }


def check_usage(usage: Any) -> Decimal:
    if isinstance(usage, bool) or not isinstance(usage, (int, float, Decimal)):
        raise InvalidUsage(f"Usage must be a number, got {usage!r}")
    value = _d(usage)
    if not value.is_finite():
        raise InvalidUsage(f"Usage must be finite, got {usage!r}")
    if value < 0:
        raise InvalidUsage(f"Usage cannot be negative, got {usage!r}")
    return value


def charge_tiers(
    usage: Decimal, tiers: Tuple[RateTier, ...]
) -> Tuple[List[TierCharge], Decimal]:
    """Apply usage to the tiers in schedule order.

    Returns the charged tiers and whatever usage no tier absorbed.
    """
    remaining = usage
    previous_limit = Decimal(0)
    charges: List[TierCharge] = []
    for tier in tiers:
        if remaining <= 0:
            break
        if tier.unbounded:
            consumed = remaining
            description = describe_tier(tier, previous_limit)
        else:
            limit = _d(tier.usage_limit)
            # a limit below the previous one leaves no room in this tier
            capacity = max(limit - previous_limit, Decimal(0))
            consumed = min(remaining, capacity)
            description = describe_tier(tier, previous_limit)
            previous_limit = limit
        if consumed > 0:
            charges.append(
                TierCharge(
                    tier=tier,
                    consumed=consumed,
                    subtotal=consumed * _d(tier.rate),
                    description=description,
                )
            )
        remaining -= consumed
    return charges, remaining


def compute(usage: Number, config: BillingConfig) -> BillResult:
    """Compute the bill for ``usage`` units under ``config``."""
    value = check_usage(usage)
    charges, unbilled = charge_tiers(value, config.usage_rate_map)
    if unbilled > 0:
        logger.info("%s units above the last tier limit were not billed", unbilled)

    demand = _d(config.demand_charge)
    pre_tax = sum((c.subtotal for c in charges), Decimal(0)) + demand
    vat = pre_tax * _d(config.vat_percentage) / 100
    return BillResult(
        usage=value,
        tier_breakdown=tuple(charges),
        unbilled_usage=unbilled,
        demand_charge=demand,
        pre_tax_total=pre_tax,
        vat_amount=vat,
        total=pre_tax + vat,
    )
