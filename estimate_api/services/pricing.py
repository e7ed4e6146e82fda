"""
Price computation: comparable sales -> point estimate, range and confidence.

Weighting: each comparable's price per m2 is weighted by proximity (linear
decay with a floor) and, when the sale date is known, by recency
(exponential decay, one-year half-life). The weighted mean is scaled to the
subject surface, then adjusted by the condition multiplier. Money is rounded
once, at the very end.
"""
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

from ..core.config import settings
from ..core.utils import fold_text
from ..data.base import (
    ComparableSale, Condition, EstimateResult, GeoPoint, PropertyKind, PropertyQuery,
)
from .comparables import distance_km

MAX_RADIUS_KM = 5.0
MIN_DISTANCE_WEIGHT = 0.1
RECENCY_HALF_LIFE_DAYS = 365.0

# Confidence and margin schedules, keyed by minimum comparable count (checked high to low)
CONFIDENCE_STEPS = ((5, 0.9), (3, 0.7), (1, 0.5))
NO_DATA_CONFIDENCE = 0.3
MARGIN_STEPS = ((5, 0.05), (3, 0.07), (1, 0.10))
NO_DATA_MARGIN = 0.15

CONDITION_MULTIPLIERS: Dict[Condition, float] = {
    Condition.TO_RENOVATE: 0.8,
    Condition.WORK_NEEDED: 0.9,
    Condition.GOOD: 1.0,
    Condition.VERY_GOOD: 1.1,
    Condition.LIKE_NEW: 1.15,
    Condition.NEW: 1.2,
}

# Folded label or enum name (to_renovate, ToRenovate, "to renovate") -> condition
_CONDITION_LOOKUP: Dict[str, Condition] = {}
for _c in Condition:
    _CONDITION_LOOKUP[fold_text(_c.value)] = _c
    _CONDITION_LOOKUP[_c.name.replace("_", "").lower()] = _c


@dataclass(frozen=True)
class WeightedComparable:
    sale: ComparableSale
    distance_km: float
    weight: float

    @property
    def price_per_sqm(self) -> float:
        return self.sale.sale_price / self.sale.living_area_sqm


def parse_condition(label: Optional[str]) -> Optional[Condition]:
    if not label:
        return None
    key = fold_text(label)
    return _CONDITION_LOOKUP.get(key) or _CONDITION_LOOKUP.get(key.replace(" ", "").replace("_", ""))


def round_money(amount: float) -> int:
    """Nearest whole unit, halves rounded up."""
    return int(math.floor(amount + 0.5))


def condition_multiplier(label: Optional[str]) -> float:
    """Unknown or missing labels are neutral (1.0)."""
    condition = parse_condition(label)
    return CONDITION_MULTIPLIERS[condition] if condition else 1.0


def distance_weight(km: float, max_radius_km: float = MAX_RADIUS_KM) -> float:
    return max(MIN_DISTANCE_WEIGHT, 1.0 - km / max_radius_km)


def recency_weight(sale_date: Optional[date], as_of: date) -> float:
    if sale_date is None:
        return 1.0
    age_days = max(0, (as_of - sale_date).days)
    return 0.5 ** (age_days / RECENCY_HALF_LIFE_DAYS)


def confidence_for(count: int) -> float:
    for threshold, score in CONFIDENCE_STEPS:
        if count >= threshold:
            return score
    return NO_DATA_CONFIDENCE


def margin_for(count: int) -> float:
    for threshold, margin in MARGIN_STEPS:
        if count >= threshold:
            return margin
    return NO_DATA_MARGIN


def default_price_per_sqm(kind: PropertyKind) -> float:
    if kind == PropertyKind.HOUSE:
        return settings.DEFAULT_PRICE_PER_SQM_HOUSE
    return settings.DEFAULT_PRICE_PER_SQM_APARTMENT


def weigh(comparables: Sequence[ComparableSale], origin: GeoPoint, as_of: date) -> List[WeightedComparable]:
    """Attach distance and weight; sales without a usable price or surface are dropped."""
    out = []
    for sale in comparables:
        if not sale.living_area_sqm or sale.living_area_sqm <= 0 or sale.sale_price <= 0:
            continue
        km = distance_km(origin, sale)
        weight = distance_weight(km) * recency_weight(sale.sale_date, as_of)
        out.append(WeightedComparable(sale=sale, distance_km=km, weight=weight))
    return out


def compute_estimate(
    query: PropertyQuery,
    comparables: Sequence[ComparableSale],
    origin: GeoPoint,
    as_of: Optional[date] = None,
) -> EstimateResult:
    as_of = as_of or date.today()
    weighted = weigh(comparables, origin, as_of)
    total_weight = sum(w.weight for w in weighted)

    if weighted and total_weight > 0:
        count = len(weighted)
        per_sqm = sum(w.price_per_sqm * w.weight for w in weighted) / total_weight
    else:
        # No usable evidence: regional default, low confidence, wide band
        count = 0
        per_sqm = default_price_per_sqm(query.kind)

    adjusted_per_sqm = per_sqm * condition_multiplier(query.condition)
    estimated = adjusted_per_sqm * query.living_area_sqm
    margin = margin_for(count)

    return EstimateResult(
        average_price_per_sqm=round_money(adjusted_per_sqm),
        estimated_price=round_money(estimated),
        price_range_min=round_money(estimated * (1 - margin)),
        price_range_max=round_money(estimated * (1 + margin)),
        comparable_sale_count=count,
        confidence_score=confidence_for(count),
    )
