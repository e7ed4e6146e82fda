import logging
from typing import List
from .base import GeocodeClient, GeocodeResult, GeoPoint
from ..core.config import settings
from ..core.errors import UpstreamError
from ..core.utils import fnv1a_32, seeded_rand, normalize_address
from ..services.address import parse_address
import httpx

logger = logging.getLogger(__name__)

# Town centre the synthetic data is laid around (Lagny-sur-Marne)
MOCK_CENTER = GeoPoint(lat=48.8728, lon=2.7063)

class MockGeocode(GeocodeClient):
    """
    Mock geocoder that turns the address string into a stable lat/lon a few
    hundred metres around MOCK_CENTER. Entirely deterministic and offline.
    Addresses without a single letter are reported as not found.
    """
    async def search(self, address: str, limit: int = 1) -> List[GeocodeResult]:
        if not any(ch.isalpha() for ch in address):
            return []
        seed = fnv1a_32(normalize_address(address))
        # +/- 0.01 deg on each axis, roughly 1 km
        lat = MOCK_CENTER.lat + (seeded_rand(seed, 1)[0] - 0.5) * 0.02
        lon = MOCK_CENTER.lon + (seeded_rand(seed+1, 1)[0] - 0.5) * 0.02
        parts = parse_address(address)
        return [GeocodeResult(
            point=GeoPoint(lat=round(lat, 6), lon=round(lon, 6)),
            label=address.strip(),
            street=parts.street_name,
            postcode=parts.postal_code,
            city="Lagny-sur-Marne",
        )][:limit]

class HttpGeocode(GeocodeClient):
    """
    Client for the French national address API (BAN), or anything that
    answers ``GET /search/?q=...&limit=...`` with a GeoJSON FeatureCollection.
    """
    def __init__(self, base_url: str, timeout: float = settings.HTTP_TIMEOUT_SECONDS, transport=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def search(self, address: str, limit: int = 1) -> List[GeocodeResult]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.get(f"{self.base_url}/search/", params={"q": address, "limit": limit})
                r.raise_for_status()
                features = r.json().get("features") or []
                return [self._to_result(f) for f in features]
        except httpx.HTTPError as exc:
            logger.warning("geocoder call failed: %s", exc)
            raise UpstreamError("geocoding service unavailable") from exc
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("geocoder returned an unexpected payload: %s", exc)
            raise UpstreamError("geocoding service unavailable") from exc

    @staticmethod
    def _to_result(feature: dict) -> GeocodeResult:
        # GeoJSON order is [lon, lat]
        lon, lat = feature["geometry"]["coordinates"][:2]
        props = feature.get("properties") or {}
        return GeocodeResult(
            point=GeoPoint(lat=float(lat), lon=float(lon)),
            label=props.get("label", ""),
            street=props.get("street") or props.get("name"),
            postcode=props.get("postcode"),
            city=props.get("city"),
        )

def geocode_client() -> GeocodeClient:
    """
    Factory picks mock or http based on env flags.
    """
    if settings.GEO_PROVIDER == "http" and settings.GEO_BASE_URL:
        return HttpGeocode(settings.GEO_BASE_URL)
    return MockGeocode()
