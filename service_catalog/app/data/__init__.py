"""
Static datasets for the Catalog Service.

Records are frozen pydantic models held in tuples, built once at import
time and shared by reference with the query services.
"""

from .models import Product, User
from .products import PRODUCTS
from .users import USERS

__all__ = ["Product", "User", "PRODUCTS", "USERS"]
