"""Stock location, stock level, movement and transfer schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.store_service.models import StockLocationType, StockMovementType


class StockLocationCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = None
    type: StockLocationType = StockLocationType.WAREHOUSE
    distributor_id: Optional[uuid.UUID] = None
    is_active: bool = True


class StockLocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    address: Optional[str] = None
    type: StockLocationType
    distributor_id: Optional[uuid.UUID] = None
    is_active: bool
    created_at: datetime


class StockLevelCreate(BaseModel):
    product_id: uuid.UUID
    variation_id: Optional[uuid.UUID] = None
    location_id: uuid.UUID
    quantity: int = Field(..., ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=1000)


class StockLevelUpdate(BaseModel):
    quantity: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=1000)


class StockLevelResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: Optional[str] = None
    variation_id: Optional[uuid.UUID] = None
    variation_name: Optional[str] = None
    location_id: uuid.UUID
    location_name: Optional[str] = None
    quantity: int
    reserved_quantity: int
    available_quantity: int
    reorder_point: Optional[int] = None
    is_low_stock: bool
    last_recount_at: Optional[datetime] = None
    updated_at: datetime


class StockLevelListResponse(BaseModel):
    items: list[StockLevelResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class ProductStockResponse(BaseModel):
    product_id: uuid.UUID
    total_quantity: int
    total_reserved: int
    total_available: int
    levels: list[StockLevelResponse]


class StockTransferRequest(BaseModel):
    product_id: uuid.UUID
    variation_id: Optional[uuid.UUID] = None
    quantity: int = Field(..., gt=0)
    from_location_id: uuid.UUID
    to_location_id: uuid.UUID
    notes: Optional[str] = Field(None, max_length=1000)


class StockTransferResponse(BaseModel):
    message: str
    source: StockLevelResponse
    destination: StockLevelResponse


class StockMovementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    variation_id: Optional[uuid.UUID] = None
    location_id: uuid.UUID
    movement_type: StockMovementType
    quantity: int
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime


class StockMovementListResponse(BaseModel):
    movements: list[StockMovementResponse]
    total: int
    page: int
    limit: int
    total_pages: int
