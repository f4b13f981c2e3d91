# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime


class ItemIn(BaseModel):
    """Add a product to the current cart."""

    product_id: int = Field(..., gt=0, description="Product id (> 0)")
    quantity: int = Field(1, gt=0, description="Quantity to add (> 0)")


class QuantityIn(BaseModel):
    """Set a line's quantity; 0 removes the line."""

    quantity: int = Field(..., ge=0)


class CartItemOut(BaseModel):
    product_id: int
    quantity: int
    price: Decimal
    subtotal: Decimal


class CartOut(BaseModel):
    cart_id: int | None = None
    user_id: int | None = None
    items: List[CartItemOut]
    item_count: int
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    id: int = Field(..., gt=0, description="User id (> 0)")
    name: str = Field(..., min_length=1, max_length=100)


class UserRead(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class LoginOut(BaseModel):
    """Result of the login hook: what happened to the guest cart."""

    user_id: int
    merge: str
    cart_id: int | None = None
