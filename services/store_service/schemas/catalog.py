"""Product and variation schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# VARIATION SCHEMAS
# ============================================================================


class VariationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    flavor: Optional[str] = Field(None, max_length=100)
    strength: Optional[int] = Field(None, ge=0)
    price: Decimal = Field(..., ge=0)
    compare_at_price: Optional[Decimal] = Field(None, ge=0)
    sku: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class VariationCreate(VariationBase):
    pass


class VariationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    flavor: Optional[str] = Field(None, max_length=100)
    strength: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    compare_at_price: Optional[Decimal] = Field(None, ge=0)
    sku: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class VariationResponse(VariationBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    flavor: Optional[str] = Field(None, max_length=100)
    strength: Optional[int] = Field(None, ge=0)
    price: Decimal = Field(..., ge=0)
    compare_at_price: Optional[Decimal] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class ProductCreate(ProductBase):
    variations: list[VariationCreate] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    flavor: Optional[str] = Field(None, max_length=100)
    strength: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    compare_at_price: Optional[Decimal] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    variations: list[VariationResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ProductDetailResponse(ProductResponse):
    available_stock: int = 0


class ProductListResponse(BaseModel):
    products: list[ProductResponse]
    total: int
    page: int
    limit: int
    total_pages: int
