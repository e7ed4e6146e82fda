"""
Tests for the HTTP collaborators, driven through httpx.MockTransport.
"""
import asyncio
import json
from datetime import date

import httpx
import pytest

from conftest import ORIGIN
from estimate_api.core.errors import UpstreamError
from estimate_api.data.base import BoundingBox, MailMessage, SalesFilter
from estimate_api.data.geocode_client import HttpGeocode, MockGeocode
from estimate_api.data.mailer import ResendMailer
from estimate_api.data.sales_store import HttpSalesStore, InMemorySalesStore, synthetic_sales


def transport(handler):
    return httpx.MockTransport(handler)


def fail_with(exc_type):
    def handler(request):
        raise exc_type("boom", request=request)
    return handler


# =============================================================================
# Geocoder
# =============================================================================

BAN_RESPONSE = {
    "type": "FeatureCollection",
    "features": [{
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [2.7063, 48.8728]},
        "properties": {"label": "12 Rue du Chemin de Fer 77400 Lagny-sur-Marne",
                       "street": "Rue du Chemin de Fer", "postcode": "77400",
                       "city": "Lagny-sur-Marne", "score": 0.97},
    }],
}


class TestHttpGeocode:

    def test_parses_first_feature(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json=BAN_RESPONSE)

        geo = HttpGeocode("https://geo.example/", transport=transport(handler))
        results = asyncio.run(geo.search("12 rue du chemin de fer lagny"))
        assert results[0].point == ORIGIN
        assert results[0].postcode == "77400"
        assert results[0].street == "Rue du Chemin de Fer"
        assert seen["url"].path == "/search/"
        assert seen["url"].params["q"] == "12 rue du chemin de fer lagny"
        assert seen["url"].params["limit"] == "1"

    def test_no_features(self):
        geo = HttpGeocode("https://geo.example", transport=transport(
            lambda r: httpx.Response(200, json={"type": "FeatureCollection", "features": []})))
        assert asyncio.run(geo.search("nowhere")) == []

    @pytest.mark.parametrize("handler", [
        lambda r: httpx.Response(503),
        lambda r: httpx.Response(200, json={"features": [{"geometry": {}}]}),
        fail_with(httpx.ConnectTimeout),
        fail_with(httpx.ConnectError),
    ])
    def test_failures_are_upstream_errors(self, handler):
        geo = HttpGeocode("https://geo.example", transport=transport(handler))
        with pytest.raises(UpstreamError):
            asyncio.run(geo.search("12 rue de la Paix"))


class TestMockGeocode:

    def test_deterministic_and_close_to_town(self):
        a = asyncio.run(MockGeocode().search("12 rue de la Paix, 77400 Lagny"))
        b = asyncio.run(MockGeocode().search("12  RUE de la paix, 77400 Lagny"))
        assert a[0].point == b[0].point
        assert abs(a[0].point.lat - ORIGIN.lat) <= 0.01
        assert a[0].postcode == "77400"

    def test_not_found_without_letters(self):
        assert asyncio.run(MockGeocode().search("1234")) == []


# =============================================================================
# Sales store
# =============================================================================

ROWS = [
    {"id": 7, "type": "apartment", "address": "3 Rue Vacheresse 77400 Lagny-sur-Marne",
     "surface": 58, "price": 236000, "date": "2023-11-02", "latitude": 48.873, "longitude": 2.707},
    {"id": 8, "type": "apartment", "address": "Rue des Marais", "surface": 61, "price": 250000,
     "date": None, "latitude": None, "longitude": None},
    {"id": 9, "type": "apartment", "address": "no surface", "surface": None, "price": 1},
]


class TestHttpSalesStore:

    def test_builds_postgrest_query(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json=ROWS)

        store = HttpSalesStore("https://db.example", api_key="anon", transport=transport(handler))
        flt = SalesFilter(property_type="apartment", min_surface=48, max_surface=72,
                          box=BoundingBox.around(ORIGIN, 0.002))
        sales = asyncio.run(store.find_sales(flt))

        request = seen["request"]
        assert request.url.path == "/rest/v1/property_sales"
        assert request.headers["apikey"] == "anon"
        assert request.headers["authorization"] == "Bearer anon"
        params = request.url.params
        assert params["type"] == "eq.apartment"
        assert params.get_list("surface") == ["gte.48", "lte.72"]
        assert len(params.get_list("latitude")) == 2
        assert len(params.get_list("longitude")) == 2

        assert [s.id for s in sales] == ["7", "8"]
        assert sales[0].sale_date == date(2023, 11, 2)
        assert sales[0].living_area_sqm == 58.0
        assert sales[1].lat is None and sales[1].sale_date is None

    def test_text_filter(self):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            return httpx.Response(200, json=[])

        store = HttpSalesStore("https://db.example", transport=transport(handler))
        asyncio.run(store.find_sales(SalesFilter(property_type="house", text="77400")))
        assert seen["params"]["address"] == "ilike.*77400*"
        assert "surface" not in seen["params"]

    @pytest.mark.parametrize("handler", [
        lambda r: httpx.Response(500, json={"message": "relation does not exist"}),
        lambda r: httpx.Response(200, content=b"not json"),
        fail_with(httpx.ReadTimeout),
    ])
    def test_failures_are_upstream_errors(self, handler):
        store = HttpSalesStore("https://db.example", transport=transport(handler))
        with pytest.raises(UpstreamError):
            asyncio.run(store.find_sales(SalesFilter(property_type="house")))


class TestInMemorySalesStore:

    def test_synthetic_sales_are_filterable(self):
        store = InMemorySalesStore(synthetic_sales())
        flt = SalesFilter(property_type="house", min_surface=50, max_surface=150,
                          box=BoundingBox.around(ORIGIN, 0.05))
        sales = asyncio.run(store.find_sales(flt))
        assert sales
        assert all(s.property_type == "house" and 50 <= s.living_area_sqm <= 150 for s in sales)

    def test_synthetic_sales_are_stable(self):
        assert synthetic_sales() == synthetic_sales()


# =============================================================================
# Mailer
# =============================================================================

class TestResendMailer:

    def test_posts_plain_text_mail(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json={"id": "mail-1"})

        mail = ResendMailer("re_key", "from@example.com", "team@example.com", transport=transport(handler))
        asyncio.run(mail.send(MailMessage(subject="Hello", text="Body")))
        request = seen["request"]
        assert str(request.url) == ResendMailer.API_URL
        assert request.headers["authorization"] == "Bearer re_key"
        assert json.loads(request.content) == {
            "from": "from@example.com", "to": "team@example.com", "subject": "Hello", "text": "Body",
        }

    def test_provider_error(self):
        mail = ResendMailer("re_key", "a@b.c", "d@e.f", transport=transport(lambda r: httpx.Response(422)))
        with pytest.raises(UpstreamError):
            asyncio.run(mail.send(MailMessage(subject="Hello", text="Body")))
