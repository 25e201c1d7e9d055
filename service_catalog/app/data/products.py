"""
Product dataset.
"""

from typing import Tuple

from .models import Product

PRODUCTS: Tuple[Product, ...] = (
    Product(id=1, name="Wireless Mouse", price=599, category="electronics", in_stock=True),
    Product(id=2, name="Mechanical Keyboard", price=2499, category="electronics", in_stock=True),
    Product(id=3, name="USB-C Hub", price=1299, category="electronics", in_stock=False),
    Product(id=4, name="Notebook", price=149, category="stationery", in_stock=True),
    Product(id=5, name="Backpack", price=1999, category="accessories", in_stock=True),
)
