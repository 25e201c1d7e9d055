"""
Record models for the Catalog Service.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """User record."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: Literal["admin", "user"]


class Product(BaseModel):
    """Product record. Prices are in minor currency units."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str
    price: int
    category: str
    in_stock: bool = Field(alias="inStock")
