"""
Comparable sale retrieval with progressive widening.

A single narrow query returns nothing for streets with a sparse sales
history, so the search walks an ordered list of tiers, each looser than
the previous one, and stops as soon as enough distinct sales are in hand.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.config import settings
from ..core.utils import fold_text
from ..data.base import (
    BoundingBox, ComparableSale, GeoPoint, PropertyQuery, SalesFilter, SalesStore,
)
from .address import AddressParts, parse_address

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
# Distance assigned to sales without coordinates; far beyond any search radius
MISSING_DISTANCE_KM = 999.0


@dataclass(frozen=True)
class SearchTier:
    name: str
    surface_tolerance: Optional[float] = None   # 0.2 -> +/-20% of the subject surface
    box_half_width_deg: Optional[float] = None  # 0.002 deg is roughly 200 m
    text_match: bool = False                    # street name / postal code containment


SEARCH_TIERS: Tuple[SearchTier, ...] = (
    SearchTier("tight", surface_tolerance=0.20, box_half_width_deg=0.002),
    SearchTier("neighbourhood", surface_tolerance=0.30, box_half_width_deg=0.015),
    SearchTier("district", surface_tolerance=0.40, box_half_width_deg=0.05),
    SearchTier("address_text", text_match=True),
)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres on a spherical Earth."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi / 2) ** 2 + \
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_km(origin: GeoPoint, sale: ComparableSale) -> float:
    if sale.lat is None or sale.lon is None:
        return MISSING_DISTANCE_KM
    return haversine_km(origin.lat, origin.lon, sale.lat, sale.lon)


def sale_key(sale: ComparableSale):
    """Record identity, or address + date + price when the store has no id."""
    if sale.id is not None:
        return ("id", sale.id)
    return ("composite", fold_text(sale.address), sale.sale_date, sale.sale_price)


def tier_filters(tier: SearchTier, query: PropertyQuery, origin: GeoPoint,
                 hints: AddressParts) -> List[SalesFilter]:
    """Store filters to run, in order, for one tier."""
    kind = query.kind.value
    if tier.text_match:
        needles = [n for n in (hints.street_name, hints.postal_code) if n]
        return [SalesFilter(property_type=kind, text=n) for n in needles]

    min_surface = max_surface = None
    if tier.surface_tolerance is not None:
        min_surface = query.living_area_sqm * (1 - tier.surface_tolerance)
        max_surface = query.living_area_sqm * (1 + tier.surface_tolerance)
    box = None
    if tier.box_half_width_deg is not None:
        box = BoundingBox.around(origin, tier.box_half_width_deg)
    return [SalesFilter(property_type=kind, min_surface=min_surface, max_surface=max_surface, box=box)]


async def find_comparables(
    store: SalesStore,
    query: PropertyQuery,
    origin: GeoPoint,
    hints: Optional[AddressParts] = None,
    tiers: Sequence[SearchTier] = SEARCH_TIERS,
    min_sample: Optional[int] = None,
    cap: Optional[int] = None,
) -> List[ComparableSale]:
    """
    Walk ``tiers`` until at least ``min_sample`` distinct sales are found,
    then return the ``cap`` nearest to ``origin``, closest first.

    Store failures propagate as UpstreamError; an empty list means the
    store answered but nothing matched.
    """
    min_sample = settings.MIN_COMPARABLES if min_sample is None else min_sample
    cap = settings.MAX_COMPARABLES if cap is None else cap
    hints = hints if hints is not None else parse_address(query.address)

    merged: Dict[object, ComparableSale] = {}
    satisfied_by = None
    for tier in tiers:
        for flt in tier_filters(tier, query, origin, hints):
            for sale in await store.find_sales(flt):
                merged.setdefault(sale_key(sale), sale)
            if len(merged) >= min_sample:
                satisfied_by = tier.name
                break
        if satisfied_by:
            break

    # Nearest first; more recent sale breaks distance ties
    ranked = sorted(
        merged.values(),
        key=lambda s: (distance_km(origin, s), -(s.sale_date.toordinal() if s.sale_date else 0)),
    )
    logger.info(
        "comparables: %d found, %d kept, tier=%s",
        len(ranked), min(len(ranked), cap), satisfied_by or "exhausted",
    )
    return ranked[:cap]
