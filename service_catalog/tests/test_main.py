"""
Unit tests for the Catalog service HTTP surface.
"""

import time

import pytest
from datetime import datetime
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from shared import base_service
from shared.config import get_config
from service_catalog.app.main import CatalogService, create_app, parse_id
from service_catalog.app.cache.redis_client import ConnectionState, RedisConnectionClient


class TestCatalogService:
    """Test cases for CatalogService."""

    @pytest.fixture
    def config(self):
        """Service configuration independent of the environment."""
        return get_config("catalog", app_env="test", cors_origin="http://localhost:5173")

    @pytest.fixture
    def catalog_service(self, config):
        """Create CatalogService instance with an unstarted cache client."""
        return CatalogService(config=config)

    @pytest.fixture
    def client(self, catalog_service):
        """Create test client."""
        return TestClient(catalog_service.app)

    def test_create_app(self):
        """Test the application factory wires the service into app state."""
        app = create_app()

        assert isinstance(app.state.catalog_service, CatalogService)

    def test_health_check(self, client):
        """Test health endpoint shape."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["cacheService"] == "connecting"
        assert data["uptime"] >= 0
        assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None

    def test_health_uptime_counts_from_process_start(self, monkeypatch, client):
        """Test uptime is measured from process start, not service construction."""
        monkeypatch.setattr(base_service, "PROCESS_STARTED_AT", time.monotonic() - 100)

        response = client.get("/health")

        assert response.json()["uptime"] >= 100

    @pytest.mark.parametrize("state", list(ConnectionState))
    def test_health_check_reports_cache_state(self, config, state):
        """Test health endpoint reflects the cache client state and stays 200."""
        cache = MagicMock(spec=RedisConnectionClient)
        cache.state = state
        service = CatalogService(config=config, cache_client=cache)
        client = TestClient(service.app)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["cacheService"] == state.value
        cache.add_listener.assert_called_once()

    def test_list_users(self, client):
        """Test listing users."""
        response = client.get("/api/users")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert len(data["data"]) == 4

    def test_get_user(self, client):
        """Test getting a user by id."""
        response = client.get("/api/users/1")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"id": 1, "name": "Anurag", "email": "anurag@example.com", "role": "admin"},
        }

    def test_get_user_decimal_id(self, client):
        """Test an integral decimal id resolves like its integer form."""
        response = client.get("/api/users/1.0")

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Anurag"

    def test_get_user_not_found(self, client):
        """Test missing user maps to 404."""
        response = client.get("/api/users/999")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "User not found"}

    def test_get_user_malformed_id(self, client):
        """Test non-numeric user id is treated as not found."""
        response = client.get("/api/users/abc")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "User not found"}

    def test_users_by_role(self, client):
        """Test filtering users by role."""
        admins = client.get("/api/users/role/admin").json()
        nobody = client.get("/api/users/role/superadmin")

        assert [user["name"] for user in admins["data"]] == ["Anurag", "Amit"]
        assert nobody.status_code == 200
        assert nobody.json() == {"success": True, "data": []}

    def test_list_products(self, client):
        """Test listing products."""
        data = client.get("/api/products").json()

        assert data["success"] is True
        assert len(data["data"]) == 5
        assert "inStock" in data["data"][0]

    def test_in_stock_products(self, client):
        """Test the in-stock route is not shadowed by the id route."""
        response = client.get("/api/products/in-stock")

        assert response.status_code == 200
        products = response.json()["data"]
        assert [product["id"] for product in products] == [1, 2, 4, 5]
        assert all(product["inStock"] for product in products)

    def test_get_product(self, client):
        """Test getting a product by id."""
        data = client.get("/api/products/3").json()

        assert data["data"]["name"] == "USB-C Hub"
        assert data["data"]["inStock"] is False

    @pytest.mark.parametrize("product_id", ["999", "abc", "1.5"])
    def test_get_product_not_found(self, client, product_id):
        """Test missing or malformed product ids map to 404."""
        response = client.get(f"/api/products/{product_id}")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Product not found"}

    def test_products_by_category(self, client):
        """Test filtering products by category."""
        electronics = client.get("/api/products/category/electronics").json()["data"]
        food = client.get("/api/products/category/food").json()

        assert len(electronics) == 3
        assert all(product["category"] == "electronics" for product in electronics)
        assert food == {"success": True, "data": []}

    def test_response_headers(self, client):
        """Test request id and security headers are added to responses."""
        response = client.get("/api/users", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"

    def test_generated_request_id(self, client):
        """Test a request id is generated when the caller sends none."""
        response = client.get("/health")

        assert response.headers["X-Request-ID"]

    def test_cors_preflight(self, client):
        """Test CORS preflight for the configured origin."""
        response = client.options(
            "/api/users",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"

    def test_metrics_endpoint(self, client, catalog_service):
        """Test request metrics are exported."""
        client.get("/api/users/1")
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text
        assert catalog_service.metrics.sample(
            "http_requests_total",
            {"method": "GET", "endpoint": "/api/users/{user_id}", "status_code": "200"},
        ) == 1.0

    def test_cache_transitions_feed_metrics(self, catalog_service):
        """Test cache state transitions are recorded as metrics."""
        catalog_service._record_cache_state(ConnectionState.RECONNECTING, 1)
        catalog_service._record_cache_state(ConnectionState.CONNECTED, 0)

        metrics = catalog_service.metrics
        assert metrics.sample("cache_service_state", {"state": "connected"}) == 1.0
        assert metrics.sample("cache_service_state", {"state": "reconnecting"}) == 0.0
        assert metrics.sample("cache_service_reconnect_attempts_total") == 1.0

    def test_unhandled_errors_render_500(self, catalog_service):
        """Test unexpected exceptions become a structured 500."""
        catalog_service.user_service.get_all_users = MagicMock(side_effect=RuntimeError("boom"))
        client = TestClient(catalog_service.app, raise_server_exceptions=False)

        response = client.get("/api/users")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal server error"}


class TestParseId:
    """Test cases for path id parsing."""

    @pytest.mark.parametrize("raw, expected", [
        ("1", 1),
        ("42", 42),
        ("1.0", 1),
        (" 2 ", 2),
        ("1_0", None),
        ("abc", None),
        ("1.5", None),
        ("", None),
    ])
    def test_parse_id(self, raw, expected):
        assert parse_id(raw) == expected
