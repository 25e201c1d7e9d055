"""
Product lookups for the Catalog Service.
"""

from typing import Callable, Optional, Sequence

from ..data import PRODUCTS, Product


class ProductService:
    """Read-only queries over the product dataset."""

    def __init__(self, products: Sequence[Product] = PRODUCTS):
        self._products = products

    def get_all_products(self) -> Sequence[Product]:
        """Return every product in dataset order."""
        return self._products

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        """Return the product with ``product_id``, or None when absent."""
        return next((product for product in self._products if product.id == product_id), None)

    def filter(self, predicate: Callable[[Product], bool]) -> Sequence[Product]:
        return tuple(product for product in self._products if predicate(product))

    def get_products_by_category(self, category: str) -> Sequence[Product]:
        """Return products in ``category``; empty when none match."""
        return self.filter(lambda product: product.category == category)

    def get_in_stock_products(self) -> Sequence[Product]:
        return self.filter(lambda product: product.in_stock)
