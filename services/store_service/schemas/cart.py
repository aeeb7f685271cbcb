"""Cart schemas."""

import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CartItemAdd(BaseModel):
    product_id: uuid.UUID
    variation_id: Optional[uuid.UUID] = None
    quantity: int = 1


class CartItemUpdate(BaseModel):
    quantity: int


class CartItemResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    variation_id: Optional[uuid.UUID] = None
    product_name: str
    variation_name: Optional[str] = None
    price: Decimal
    quantity: int
    subtotal: Decimal
    image_url: Optional[str] = None


class CartResponse(BaseModel):
    id: Optional[uuid.UUID] = None
    items: list[CartItemResponse] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0.00")
    item_count: int = 0
    total_quantity: int = 0


class CartValidateRequest(BaseModel):
    is_wholesale: bool = False
    check_inventory: bool = True


class CartValidationResponse(BaseModel):
    valid: bool
    errors: list[str]
    warnings: list[str]
    cart: CartResponse
