import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional
from .base import SalesStore, SalesFilter, ComparableSale
from .geocode_client import MOCK_CENTER
from ..core.config import settings
from ..core.errors import UpstreamError
from ..core.utils import fnv1a_32, seeded_rand, fold_text
import httpx

logger = logging.getLogger(__name__)

class InMemorySalesStore(SalesStore):
    """
    Applies SalesFilter predicates over a list held in memory.
    Used for offline development and as the fake store in tests.
    """
    def __init__(self, records: Iterable[ComparableSale]):
        self.records = list(records)
        self.calls: List[SalesFilter] = []

    async def find_sales(self, flt: SalesFilter) -> List[ComparableSale]:
        self.calls.append(flt)
        return [r for r in self.records if self._matches(r, flt)]

    @staticmethod
    def _matches(r: ComparableSale, flt: SalesFilter) -> bool:
        if flt.property_type is not None and r.property_type != flt.property_type:
            return False
        if flt.min_surface is not None and r.living_area_sqm < flt.min_surface:
            return False
        if flt.max_surface is not None and r.living_area_sqm > flt.max_surface:
            return False
        if flt.box is not None and not flt.box.contains(r.lat, r.lon):
            return False
        if flt.text and fold_text(flt.text) not in fold_text(r.address):
            return False
        return True

class HttpSalesStore(SalesStore):
    """
    Reads the ``property_sales`` table through a PostgREST endpoint
    (columns: id, type, address, surface, price, date, latitude, longitude).
    """
    def __init__(self, base_url: str, api_key: Optional[str] = None, table: str = "property_sales",
                 timeout: float = settings.HTTP_TIMEOUT_SECONDS, transport=None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.table = table
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict:
        if not self.api_key:
            return {}
        return {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}

    @staticmethod
    def _params(flt: SalesFilter) -> list[tuple[str, str]]:
        params = [("select", "*")]
        if flt.property_type is not None:
            params.append(("type", f"eq.{flt.property_type}"))
        if flt.min_surface is not None:
            params.append(("surface", f"gte.{flt.min_surface}"))
        if flt.max_surface is not None:
            params.append(("surface", f"lte.{flt.max_surface}"))
        if flt.box is not None:
            params += [
                ("latitude", f"gte.{flt.box.min_lat}"), ("latitude", f"lte.{flt.box.max_lat}"),
                ("longitude", f"gte.{flt.box.min_lon}"), ("longitude", f"lte.{flt.box.max_lon}"),
            ]
        if flt.text:
            params.append(("address", f"ilike.*{flt.text}*"))
        params.append(("order", "date.desc"))
        return params

    async def find_sales(self, flt: SalesFilter) -> List[ComparableSale]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.get(
                    f"{self.base_url}/rest/v1/{self.table}",
                    params=self._params(flt), headers=self._headers(),
                )
                r.raise_for_status()
                rows = r.json()
                return [sale for sale in (self._to_sale(row) for row in rows) if sale is not None]
        except httpx.HTTPError as exc:
            logger.warning("sales store query failed: %s", exc)
            raise UpstreamError("sales data unavailable") from exc
        except (TypeError, ValueError, AttributeError) as exc:
            logger.warning("sales store returned an unexpected payload: %s", exc)
            raise UpstreamError("sales data unavailable") from exc

    @staticmethod
    def _to_sale(row: dict) -> Optional[ComparableSale]:
        surface, price = row.get("surface"), row.get("price")
        if surface is None or price is None:
            return None
        lat, lon = row.get("latitude"), row.get("longitude")
        sold = row.get("date")
        return ComparableSale(
            id=str(row["id"]) if row.get("id") is not None else None,
            property_type=row.get("type", ""),
            address=row.get("address") or "",
            living_area_sqm=float(surface),
            sale_price=float(price),
            sale_date=date.fromisoformat(sold[:10]) if sold else None,
            lat=float(lat) if lat is not None else None,
            lon=float(lon) if lon is not None else None,
        )

MOCK_STREETS = [
    "Rue du Chemin de Fer", "Avenue du Général Leclerc", "Rue des Marais",
    "Boulevard du Maréchal Gallieni", "Rue Saint-Denis", "Quai de la Gourdine",
    "Rue Vacheresse", "Avenue de la République",
]

def synthetic_sales(count: int = 80, seed: int = fnv1a_32("sales")) -> List[ComparableSale]:
    """
    Plausible but fake sales spread over ~3 km around MOCK_CENTER and the last three years.
    """
    out: List[ComparableSale] = []
    today = date.today()
    for i in range(count):
        kind = "house" if i % 2 == 0 else "apartment"
        surface = 25 + int(seeded_rand(seed+11*i, 1)[0] * 150)
        per_sqm = (3400 if kind == "house" else 3900) + seeded_rand(seed+13*i, 1)[0] * 900
        street = MOCK_STREETS[int(seeded_rand(seed+17*i, 1)[0] * len(MOCK_STREETS)) % len(MOCK_STREETS)]
        out.append(ComparableSale(
            id=f"mock-{i}",
            property_type=kind,
            address=f"{1 + i % 60} {street} 77400 Lagny-sur-Marne",
            living_area_sqm=float(surface),
            sale_price=float(round(surface * per_sqm, -2)),
            sale_date=today - timedelta(days=int(seeded_rand(seed+19*i, 1)[0] * 3 * 365)),
            lat=round(MOCK_CENTER.lat + (seeded_rand(seed+23*i, 1)[0] - 0.5) * 0.06, 6),
            lon=round(MOCK_CENTER.lon + (seeded_rand(seed+29*i, 1)[0] - 0.5) * 0.06, 6),
        ))
    return out

def sales_store() -> SalesStore:
    if settings.SALES_PROVIDER == "http" and settings.SALES_BASE_URL:
        return HttpSalesStore(settings.SALES_BASE_URL, settings.SALES_API_KEY, settings.SALES_TABLE)
    return InMemorySalesStore(synthetic_sales())
