import logging
from datetime import date
from typing import Optional

from ..core.errors import EstimationError, InvalidInput
from ..core.metrics import ESTIMATES, ESTIMATE_COMPARABLES
from ..core.utils import normalize_address
from ..data.base import EstimateResult, GeocodeClient, PropertyQuery, SalesStore
from ..data.geocode_client import geocode_client
from ..data.sales_store import sales_store
from .address import AddressParts, parse_address, resolve_address
from .comparables import find_comparables
from .pricing import compute_estimate

logger = logging.getLogger(__name__)

class EstimationService:
    """
    Orchestrates:
      address → geocode → comparable sales → weighted price → estimate
    Stateless: every call recomputes from the collaborators it was given.
    """
    def __init__(self, geo: Optional[GeocodeClient] = None, store: Optional[SalesStore] = None):
        # Data adapters (mock or HTTP)
        self.geo = geo or geocode_client()
        self.store = store or sales_store()

    async def estimate(self, query: PropertyQuery, as_of: Optional[date] = None) -> EstimateResult:
        try:
            result = await self._estimate(query, as_of)
        except EstimationError as exc:
            ESTIMATES.labels(outcome=exc.outcome).inc()
            raise
        ESTIMATES.labels(outcome="ok" if result.comparable_sale_count else "fallback").inc()
        ESTIMATE_COMPARABLES.observe(result.comparable_sale_count)
        return result

    async def _estimate(self, query: PropertyQuery, as_of: Optional[date]) -> EstimateResult:
        if not query.address:
            raise InvalidInput("address missing")
        if query.living_area_sqm <= 0:
            raise InvalidInput("living area must be positive")

        # 1) Geocode (address -> best match)
        geo = await resolve_address(self.geo, query.address)

        # 2) Comparables; geocoder fields take precedence over parsed text
        parsed = parse_address(query.address)
        hints = AddressParts(
            street_name=geo.street or parsed.street_name,
            postal_code=geo.postcode or parsed.postal_code,
        )
        comparables = await find_comparables(self.store, query, geo.point, hints=hints)

        # 3) Price
        result = compute_estimate(query, comparables, geo.point, as_of=as_of)
        logger.info(
            "estimate address=%r lat=%.6f lon=%.6f comparables=%d price=%d confidence=%.1f",
            normalize_address(query.address), geo.point.lat, geo.point.lon,
            result.comparable_sale_count, result.estimated_price, result.confidence_score,
        )
        return result
