import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

UNBOUNDED = -1


class BillingError(ValueError):
    """Base class for billing input errors."""


class MalformedConfig(BillingError):
    pass


def _number(value: Any, field: str) -> float:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedConfig(f"{field} must be a number, got {value!r}")
    try:
        finite = math.isfinite(value)
    except OverflowError as exc:
        raise MalformedConfig(f"{field} is too large") from exc
    if not finite:
        raise MalformedConfig(f"{field} must be finite, got {value!r}")
    return value


@dataclass(frozen=True)
class RateTier:
    usage_limit: float
    rate: float

    @property
    def unbounded(self) -> bool:
        return self.usage_limit == UNBOUNDED

    @classmethod
    def from_dict(cls, data: Any, index: int = 0) -> "RateTier":
        if not isinstance(data, dict):
            raise MalformedConfig(f"tier {index} must be an object")
        try:
            limit = _number(data["usage"], f"tier {index} usage")
            rate = _number(data["rate"], f"tier {index} rate")
        except KeyError as exc:
            raise MalformedConfig(f"tier {index} is missing {exc.args[0]!r}") from exc
        if limit < 0 and limit != UNBOUNDED:
            raise MalformedConfig(f"tier {index} usage must be >= 0 or {UNBOUNDED}")
        if rate < 0:
            raise MalformedConfig(f"tier {index} rate must be >= 0")
        return cls(usage_limit=limit, rate=rate)

    def to_dict(self) -> Dict[str, float]:
        return {"usage": self.usage_limit, "rate": self.rate}


@dataclass(frozen=True)
class BillingConfig:
    """The persisted settings unit: rate schedule, VAT and demand charge.

    Tiers are kept in the order they were given. That order is the order in
    which usage is applied, so it is never sorted here.
    """

    usage_rate_map: Tuple[RateTier, ...]
    vat_percentage: float
    demand_charge: float

    @classmethod
    def from_dict(cls, data: Any) -> "BillingConfig":
        if not isinstance(data, dict):
            raise MalformedConfig("config must be an object")
        missing = [k for k in ("usage_rate_map", "vat_percentage", "demand_charge") if k not in data]
        if missing:
            raise MalformedConfig(f"config is missing {', '.join(missing)}")

        raw_tiers = data["usage_rate_map"]
        if not isinstance(raw_tiers, list):
            raise MalformedConfig("usage_rate_map must be a list")
        tiers = tuple(RateTier.from_dict(t, i) for i, t in enumerate(raw_tiers))
        sentinels = [i for i, t in enumerate(tiers) if t.unbounded]
        if len(sentinels) > 1:
            raise MalformedConfig("only one tier may be unbounded")
        if sentinels and sentinels[0] != len(tiers) - 1:
            raise MalformedConfig("the unbounded tier must be the last tier")

        vat = _number(data["vat_percentage"], "vat_percentage")
        if not 0 <= vat <= 100:
            raise MalformedConfig("vat_percentage must be between 0 and 100")
        demand = _number(data["demand_charge"], "demand_charge")
        if demand < 0:
            raise MalformedConfig("demand_charge must be >= 0")

        return cls(usage_rate_map=tiers, vat_percentage=vat, demand_charge=demand)

    @classmethod
    def default(cls) -> "BillingConfig":
        return DEFAULT_CONFIG

    def to_dict(self) -> Dict[str, Any]:
        return {
            "usage_rate_map": [t.to_dict() for t in self.usage_rate_map],
            "vat_percentage": self.vat_percentage,
            "demand_charge": self.demand_charge,
        }


DEFAULT_CONFIG = BillingConfig(
    usage_rate_map=(
        RateTier(50, 3.75),
        RateTier(75, 4.19),
        RateTier(124, 5.72),
        RateTier(99, 6.00),
        RateTier(99, 6.34),
        RateTier(199, 9.94),
        RateTier(UNBOUNDED, 11.46),
    ),
    vat_percentage=5,
    demand_charge=70,
)


def parse_config(text: str) -> BillingConfig:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MalformedConfig(f"config is not valid JSON: {exc}") from exc
    return BillingConfig.from_dict(data)


def serialize_config(config: BillingConfig) -> str:
    return json.dumps(config.to_dict())


def load_config_or_default(text: Optional[str]) -> BillingConfig:
    """Parse persisted settings, falling back to the built-in default."""
    if text is None:
        return DEFAULT_CONFIG
    try:
        return parse_config(text)
    except MalformedConfig as exc:
        logger.warning("Ignoring persisted settings, using default: %s", exc)
        return DEFAULT_CONFIG


def schedule_warnings(config: BillingConfig) -> List[str]:
    """Describe finite limits that are lower than the previous tier's limit."""
    warnings = []
    previous = None
    for i, tier in enumerate(config.usage_rate_map):
        if tier.unbounded:
            continue
        if previous is not None and tier.usage_limit < previous:
            warnings.append(
                f"tier {i} ends at {tier.usage_limit}, below the previous limit {previous}; "
                f"it will not receive any usage and the next tier counts from {tier.usage_limit}"
            )
        previous = tier.usage_limit
    return warnings
