from typing import Protocol, List, Optional
from dataclasses import dataclass
from datetime import date
from enum import Enum

# ----- Data shapes (thin & explicit) -----

class PropertyKind(str, Enum):
    HOUSE = "house"
    APARTMENT = "apartment"

class Condition(str, Enum):
    # Ordered from worst to best; values are the labels the form sends
    TO_RENOVATE = "À rénover"
    WORK_NEEDED = "Travaux à prévoir"
    GOOD = "Bon état"
    VERY_GOOD = "Très bon état"
    LIKE_NEW = "Refait à neuf"
    NEW = "Neuf"

@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float

@dataclass(frozen=True)
class GeocodeResult:
    point: GeoPoint
    label: str
    street: Optional[str] = None      # e.g. "Rue du Chemin de Fer"
    postcode: Optional[str] = None    # e.g. "77400"
    city: Optional[str] = None

@dataclass(frozen=True)
class PropertyQuery:
    kind: PropertyKind
    address: str
    living_area_sqm: float
    rooms: int
    condition: Optional[str] = None
    construction_year: Optional[int] = None
    floor: Optional[int] = None
    has_elevator: Optional[bool] = None
    land_area_sqm: Optional[float] = None

@dataclass(frozen=True)
class ComparableSale:
    # Read-only record owned by the sales store
    property_type: str
    address: str
    living_area_sqm: float
    sale_price: float
    sale_date: Optional[date] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    id: Optional[str] = None

@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @classmethod
    def around(cls, point: GeoPoint, half_width_deg: float) -> "BoundingBox":
        return cls(
            min_lat=point.lat - half_width_deg, max_lat=point.lat + half_width_deg,
            min_lon=point.lon - half_width_deg, max_lon=point.lon + half_width_deg,
        )

    def contains(self, lat: Optional[float], lon: Optional[float]) -> bool:
        if lat is None or lon is None:
            return False
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

@dataclass(frozen=True)
class SalesFilter:
    """
    Filter predicates understood by every sales store. Unset fields do not filter.
    ``text`` is a case-insensitive containment match on the address column.
    """
    property_type: Optional[str] = None
    min_surface: Optional[float] = None
    max_surface: Optional[float] = None
    box: Optional[BoundingBox] = None
    text: Optional[str] = None

@dataclass(frozen=True)
class EstimateResult:
    average_price_per_sqm: int
    estimated_price: int
    price_range_min: int
    price_range_max: int
    comparable_sale_count: int
    confidence_score: float

@dataclass(frozen=True)
class MailMessage:
    subject: str
    text: str

# ----- Protocols (interfaces) -----

class GeocodeClient(Protocol):
    async def search(self, address: str, limit: int = 1) -> List[GeocodeResult]:
        """Ranked matches, best first; empty list when nothing matches."""
        ...

class SalesStore(Protocol):
    async def find_sales(self, flt: SalesFilter) -> List[ComparableSale]: ...

class Mailer(Protocol):
    async def send(self, message: MailMessage) -> None: ...
