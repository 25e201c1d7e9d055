"""
Catalog service: read-only users and products API.
"""

from typing import Any, Dict, Optional

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import NotFoundError
from shared.retry import policy_from_config

from .cache.redis_client import ConnectionState, RedisConnectionClient
from .services.product_service import ProductService
from .services.user_service import UserService

KNOWN_CACHE_STATES = [state.value for state in ConnectionState]


def parse_id(raw: str) -> Optional[int]:
    """Parse a path identifier the way a numeric coercion would.

    ``"1.0"`` and ``" 2 "`` are accepted; digit separators (``"1_0"``),
    fractions and blanks are not, and map to None.
    """
    if "_" in raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not value.is_integer():
        return None
    return int(value)


class CatalogService(BaseService):
    """Catalog service implementation."""

    def __init__(self,
                 config: Optional[ServiceConfig] = None,
                 cache_client: Optional[RedisConnectionClient] = None):
        super().__init__("catalog", config)

        self.user_service = UserService()
        self.product_service = ProductService()

        self.cache = cache_client or RedisConnectionClient(
            self.config.cache_service_url,
            policy_from_config(self.config),
            health_check_interval=self.config.cache_health_check_interval,
            connect_timeout=self.config.cache_connect_timeout,
            close_timeout=self.config.cache_close_timeout,
        )
        self.cache.add_listener(self._record_cache_state)

        self._setup_user_routes()
        self._setup_product_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.catalog_service = self

    def _record_cache_state(self, state: ConnectionState, attempt: int) -> None:
        self.metrics.record_cache_state(state.value, KNOWN_CACHE_STATES)
        if state is ConnectionState.RECONNECTING:
            self.metrics.record_reconnect_attempt()

    def _setup_user_routes(self):
        """Set up /api/users routes."""

        @self.app.get("/api/users")
        async def list_users():
            users = self.user_service.get_all_users()
            return {"success": True, "data": [user.model_dump() for user in users]}

        @self.app.get("/api/users/role/{role}")
        async def users_by_role(role: str):
            users = self.user_service.get_users_by_role(role)
            return {"success": True, "data": [user.model_dump() for user in users]}

        @self.app.get("/api/users/{user_id}")
        async def get_user(user_id: str):
            user_key = parse_id(user_id)
            user = self.user_service.get_user_by_id(user_key) if user_key is not None else None
            if user is None:
                raise NotFoundError("User not found", details={"user_id": user_id})
            return {"success": True, "data": user.model_dump()}

    def _setup_product_routes(self):
        """Set up /api/products routes."""

        @self.app.get("/api/products")
        async def list_products():
            products = self.product_service.get_all_products()
            return {"success": True, "data": [self._serialize_product(p) for p in products]}

        # Registered before /{product_id} so "in-stock" is not read as an id
        @self.app.get("/api/products/in-stock")
        async def in_stock_products():
            products = self.product_service.get_in_stock_products()
            return {"success": True, "data": [self._serialize_product(p) for p in products]}

        @self.app.get("/api/products/category/{category}")
        async def products_by_category(category: str):
            products = self.product_service.get_products_by_category(category)
            return {"success": True, "data": [self._serialize_product(p) for p in products]}

        @self.app.get("/api/products/{product_id}")
        async def get_product(product_id: str):
            product_key = parse_id(product_id)
            product = (
                self.product_service.get_product_by_id(product_key)
                if product_key is not None else None
            )
            if product is None:
                raise NotFoundError("Product not found", details={"product_id": product_id})
            return {"success": True, "data": self._serialize_product(product)}

    @staticmethod
    def _serialize_product(product) -> Dict[str, Any]:
        return product.model_dump(by_alias=True)

    def _dependency_status(self) -> Dict[str, Any]:
        """Report cache service state for the health endpoint."""
        return {"cacheService": self.cache.state.value}

    def _managed_resource(self) -> RedisConnectionClient:
        return self.cache


def create_app():
    """Create catalog service application."""
    service = CatalogService()
    return service.app


def main():
    service = CatalogService()
    service.run()


if __name__ == "__main__":
    main()
