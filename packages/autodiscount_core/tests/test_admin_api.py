"""
Tests for the admin API.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from basecore.db import get_db
from autodiscount_core.catalog.base import CatalogProduct
from autodiscount_core.engines.oscillation import PriceOscillationEngine
from autodiscount_core.locks import RedisShopLocks
from autodiscount_core.runtime import get_engine


@pytest.fixture
def api(session_factory, engine):
    """TestClient with the database and engine swapped for test instances."""
    from admin_api.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


class TestHealth:

    def test_health(self, api):
        response = api.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestSettingsEndpoints:
    """Tests for /shops/{shop}/settings."""

    def test_defaults_on_first_access(self, api, shop):
        response = api.get(f"/shops/{shop}/settings")

        assert response.status_code == 200
        assert response.json() == {"shop": shop, "auto_discount": False, "admin_discount": "0.00"}

    def test_update(self, api, shop):
        response = api.put(f"/shops/{shop}/settings", json={"auto_discount": True, "admin_discount": "4.5"})

        assert response.status_code == 200
        assert response.json()["auto_discount"] is True
        assert response.json()["admin_discount"] == "4.50"

        assert api.get(f"/shops/{shop}/settings").json()["auto_discount"] is True

    def test_negative_admin_discount_rejected(self, api, shop):
        response = api.put(f"/shops/{shop}/settings", json={"auto_discount": True, "admin_discount": "-1"})
        assert response.status_code == 422


class TestProductEndpoints:
    """Tests for product listing and toggling."""

    def test_toggle_enrolls_then_unenrolls(self, api, shop, fetch):
        body = {"product_id": "gid://p/1", "variant_id": "gid://v/1", "title": "Shirt", "price": "19.99"}

        first = api.post(f"/shops/{shop}/products/toggle", json=body)
        assert first.status_code == 200
        assert first.json()["enrolled"] is True
        assert first.json()["enrollment"]["original_price"] == "19.99"
        assert first.json()["enrollment"]["phase"] == "base"
        assert fetch(shop, "gid://p/1") is not None

        second = api.post(f"/shops/{shop}/products/toggle", json=body)
        assert second.json()["enrolled"] is False
        assert fetch(shop, "gid://p/1") is None

    def test_list_requires_credential(self, api, shop):
        response = api.get(f"/shops/{shop}/products")
        assert response.status_code == 404

    def test_list_merges_enrollment_state(self, api, catalog, connected_shop, enroll):
        catalog.configure(connected_shop, products=[
            CatalogProduct(product_id="gid://p/1", title="Shirt", variant_id="gid://v/1", price=Decimal("19.99")),
            CatalogProduct(product_id="gid://p/2", title="Hat", variant_id="gid://v/2", price=Decimal("9.00")),
        ])
        enroll(connected_shop, "gid://p/1", "19.99", variant_id="gid://v/1")
        enroll(connected_shop, "gid://p/gone", "5.00")

        response = api.get(f"/shops/{connected_shop}/products")

        assert response.status_code == 200
        products = {p["product_id"]: p for p in response.json()["products"]}
        assert products["gid://p/1"]["enrolled"] is True
        assert products["gid://p/1"]["enrollment"]["is_discounted"] is False
        assert products["gid://p/2"]["enrolled"] is False
        assert products["gid://p/2"]["price"] == "9.00"
        # Enrolled but no longer listed by the catalog
        assert products["gid://p/gone"]["enrolled"] is True


class TestRunEndpoint:
    """Tests for POST /scheduler/run."""

    def test_run_returns_outcomes(self, api, connected_shop, enroll, fetch):
        enroll(connected_shop, "gid://p/1", "19.99")

        response = api.post("/scheduler/run")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["summary"]["items_updated"] == 1
        assert data["shops"][0]["items"][0]["target_price"] == "21.99"
        assert fetch(connected_shop, "gid://p/1").current_price == Decimal("21.99")

    def test_locked_shop_reported(self, api, lock_manager, connected_shop, enroll):
        enroll(connected_shop, "gid://p/1", "19.99")
        lock_manager.try_acquire(connected_shop)

        data = api.post("/scheduler/run").json()

        assert data["shops"][0]["status"] == "skipped_locked"

    def test_shop_held_by_worker_is_skipped(self, api, session_factory, catalog, fake_redis, connected_shop, enroll, fetch):
        """The worker holds the shop's Redis lease; the manual run leaves it alone."""
        from admin_api.main import app

        enroll(connected_shop, "gid://p/1", "19.99")
        app.dependency_overrides[get_engine] = lambda: PriceOscillationEngine(
            session_factory,
            catalog,
            lock_manager=RedisShopLocks(client=fake_redis),
        )
        RedisShopLocks(client=fake_redis).try_acquire(connected_shop)

        data = api.post("/scheduler/run").json()

        assert data["shops"][0]["status"] == "skipped_locked"
        assert catalog.calls() == []
        assert fetch(connected_shop, "gid://p/1").version == 1
