"""
Tests for tiered comparable retrieval.

- Tight tier short-circuits when it is enough
- Widening tiers and the address-text fallback kick in for sparse areas
- De-duplication, nearest-first ordering and the cap
- Store failures are not mistaken for "no comparables"
"""
import asyncio
from datetime import date

import pytest

from conftest import FailingStore, ORIGIN, make_sale
from estimate_api.core.errors import UpstreamError
from estimate_api.data.base import PropertyKind, PropertyQuery
from estimate_api.data.sales_store import InMemorySalesStore
from estimate_api.services.address import AddressParts
from estimate_api.services.comparables import (
    MISSING_DISTANCE_KM,
    SEARCH_TIERS,
    distance_km,
    find_comparables,
    haversine_km,
    sale_key,
)


@pytest.fixture
def query():
    return PropertyQuery(
        kind=PropertyKind.APARTMENT,
        address="12 Rue du Chemin de Fer, 77400 Lagny-sur-Marne",
        living_area_sqm=60,
        rooms=3,
        condition="Bon état",
    )


def run(store, query, **kwargs):
    return asyncio.run(find_comparables(store, query, ORIGIN, min_sample=3, cap=10, **kwargs))


class TestHaversine:

    def test_zero_for_same_point(self):
        assert haversine_km(ORIGIN.lat, ORIGIN.lon, ORIGIN.lat, ORIGIN.lon) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_km(48.0, 2.0, 49.0, 2.0) == pytest.approx(111.19, abs=0.01)

    def test_paris_to_lyon(self):
        assert haversine_km(48.8566, 2.3522, 45.7640, 4.8357) == pytest.approx(392, abs=2)

    def test_missing_coordinates_are_far_away(self):
        assert distance_km(ORIGIN, make_sale(4000, located=False)) == MISSING_DISTANCE_KM


class TestTiers:

    def test_tiers_widen_monotonically(self):
        boxed = [t for t in SEARCH_TIERS if not t.text_match]
        assert [t.box_half_width_deg for t in boxed] == sorted(t.box_half_width_deg for t in boxed)
        assert [t.surface_tolerance for t in boxed] == sorted(t.surface_tolerance for t in boxed)
        assert SEARCH_TIERS[-1].text_match

    def test_tight_tier_is_enough(self, query):
        store = InMemorySalesStore([make_sale(p, id=str(p)) for p in (4000, 4100, 4200)])
        assert len(run(store, query)) == 3
        assert len(store.calls) == 1
        assert store.calls[0].min_surface == pytest.approx(48)
        assert store.calls[0].max_surface == pytest.approx(72)

    def test_widens_for_sparse_area(self, query):
        sales = [
            make_sale(4000, id="near"),
            # under 1 km away and 25% larger: only the wider tiers accept these
            make_sale(4100, surface=75, dlat=0.005, id="b1"),
            make_sale(4200, surface=75, dlon=0.012, id="b2"),
        ]
        store = InMemorySalesStore(sales)
        found = run(store, query)
        assert [s.id for s in found] == ["near", "b1", "b2"]
        assert len(store.calls) == 2

    def test_filters_on_property_type(self, query):
        store = InMemorySalesStore([make_sale(4000, kind="house", id=str(i)) for i in range(5)])
        assert run(store, query) == []
        assert all(c.property_type == "apartment" for c in store.calls)

    def test_falls_back_to_street_then_postcode(self, query):
        far = dict(dlat=0.2, dlon=0.2)
        sales = [
            make_sale(4000, id="street", address="40 Rue du Chemin de Fer 77400 Lagny", **far),
            make_sale(4100, id="postcode", address="3 Rue Vacheresse 77400 Lagny", **far),
            make_sale(4200, id="other", address="3 Rue Vacheresse 75001 Paris", **far),
        ]
        store = InMemorySalesStore(sales)
        hints = AddressParts(street_name="Rue du Chemin de Fer", postal_code="77400")
        found = run(store, query, hints=hints)
        assert {s.id for s in found} == {"street", "postcode"}
        assert [c.text for c in store.calls if c.text] == ["Rue du Chemin de Fer", "77400"]

    def test_text_match_ignores_case_and_accents(self, query):
        sale = make_sale(4000, id="x", address="5 AVENUE DU GENERAL LECLERC", dlat=0.3)
        store = InMemorySalesStore([sale])
        hints = AddressParts(street_name="avenue du Général Leclerc")
        assert run(store, query, hints=hints) == [sale]

    def test_empty_when_every_tier_misses(self, query):
        store = InMemorySalesStore([])
        assert run(store, query) == []
        # three boxed tiers, then street and postcode text lookups
        assert len(store.calls) == 5


class TestMerge:

    def test_same_record_across_tiers_counted_once(self, query):
        store = InMemorySalesStore([make_sale(4000, id="only")])
        assert len(run(store, query)) == 1

    def test_composite_key_without_identity(self):
        a = make_sale(4000, sale_date=date(2024, 3, 1))
        b = make_sale(4000, sale_date=date(2024, 3, 1), address="1 RUE DU CHEMIN DE FER 77400 LAGNY-SUR-MARNE")
        c = make_sale(4000, sale_date=date(2024, 4, 1))
        assert sale_key(a) == sale_key(b)
        assert sale_key(a) != sale_key(c)

    def test_keeps_nearest_up_to_cap(self, query):
        sales = [make_sale(4000, dlat=0.0001 * i, id=f"s{i}") for i in range(15, 0, -1)]
        store = InMemorySalesStore(sales)
        found = run(store, query)
        assert len(found) == 10
        assert [s.id for s in found] == [f"s{i}" for i in range(1, 11)]
        assert len(store.calls) == 1

    def test_sales_without_coordinates_sort_last(self, query):
        sales = [
            make_sale(4000, id="nowhere", located=False, address="9 Rue du Chemin de Fer"),
            make_sale(4100, id="here"),
        ]
        found = run(InMemorySalesStore(sales), query)
        assert [s.id for s in found] == ["here", "nowhere"]


def test_store_failure_is_upstream_error(query):
    with pytest.raises(UpstreamError):
        run(FailingStore(UpstreamError("sales data unavailable")), query)
