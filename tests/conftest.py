from datetime import date
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from estimate_api.core.security import reset_rate_limits
from estimate_api.data.base import ComparableSale, GeocodeResult, GeoPoint, MailMessage
from estimate_api.data.sales_store import InMemorySalesStore
from estimate_api.main import app
from estimate_api.routers.estimate import service_dep
from estimate_api.routers.notifications import notification_dep
from estimate_api.services.estimation_service import EstimationService
from estimate_api.services.notification_service import NotificationService

ORIGIN = GeoPoint(lat=48.8728, lon=2.7063)


class FakeGeocoder:
    """Returns canned matches and records every lookup."""
    def __init__(self, results: Optional[List[GeocodeResult]] = None, error: Optional[Exception] = None):
        self.results = results if results is not None else [
            GeocodeResult(point=ORIGIN, label="12 Rue du Chemin de Fer 77400 Lagny-sur-Marne",
                          street="Rue du Chemin de Fer", postcode="77400", city="Lagny-sur-Marne"),
        ]
        self.error = error
        self.calls: List[str] = []

    async def search(self, address: str, limit: int = 1) -> List[GeocodeResult]:
        self.calls.append(address)
        if self.error:
            raise self.error
        return self.results[:limit]


class FailingStore:
    def __init__(self, error: Exception):
        self.error = error

    async def find_sales(self, flt):
        raise self.error


class RecordingMailer:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.sent: List[MailMessage] = []

    async def send(self, message: MailMessage) -> None:
        if self.error:
            raise self.error
        self.sent.append(message)


def make_sale(per_sqm: float, surface: float = 60.0, dlat: float = 0.0, dlon: float = 0.0,
              sale_date: Optional[date] = None, kind: str = "apartment", id: Optional[str] = None,
              address: str = "1 Rue du Chemin de Fer 77400 Lagny-sur-Marne",
              located: bool = True) -> ComparableSale:
    return ComparableSale(
        id=id,
        property_type=kind,
        address=address,
        living_area_sqm=surface,
        sale_price=per_sqm * surface,
        sale_date=sale_date,
        lat=ORIGIN.lat + dlat if located else None,
        lon=ORIGIN.lon + dlon if located else None,
    )


@pytest.fixture
def sale_factory():
    return make_sale


@pytest.fixture
def example_sales():
    """Four nearby apartments at 4000/4200/3900/4100 per m2."""
    return [make_sale(p, id=f"s{i}") for i, p in enumerate([4000, 4200, 3900, 4100])]


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def store(example_sales):
    return InMemorySalesStore(example_sales)


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def client(geocoder, store, mailer):
    app.dependency_overrides[service_dep] = lambda: EstimationService(geo=geocoder, store=store)
    app.dependency_overrides[notification_dep] = lambda: NotificationService(mail=mailer)
    reset_rate_limits()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
