"""Store inventory models: locations, stock levels and the movement trail."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import (
    StockLocationType,
    StockMovementType,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# INVENTORY MODELS
# ============================================================================


class StockLocation(Base):
    """Warehouse, storefront or distributor-held stock location."""

    __tablename__ = "stock_locations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[StockLocationType] = mapped_column(
        SAEnum(
            StockLocationType,
            values_callable=enum_values,
            name="stock_location_type_enum",
        ),
        default=StockLocationType.WAREHOUSE,
    )
    # Owner when type is Distributor
    distributor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<StockLocation {self.name} type={self.type}>"


class StockLevel(Base):
    """On-hand and reserved quantity of one product/variation at one location."""

    __tablename__ = "stock_levels"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    variation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_variations.id", ondelete="CASCADE"), nullable=True
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stock_locations.id", ondelete="CASCADE"), nullable=False
    )

    quantity: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    reserved_quantity: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )  # Held by placed, unshipped orders
    reorder_point: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_recount_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint(
            "product_id", "variation_id", "location_id", name="uq_stock_level_item"
        ),
        CheckConstraint("quantity >= 0", name="stock_quantity_positive"),
        CheckConstraint(
            "reserved_quantity >= 0 AND reserved_quantity <= quantity",
            name="stock_reserved_valid",
        ),
    )

    product = relationship("Product")
    variation = relationship("ProductVariation")
    location = relationship("StockLocation")

    @property
    def available_quantity(self) -> int:
        return self.quantity - self.reserved_quantity

    @property
    def is_low_stock(self) -> bool:
        return self.reorder_point is not None and self.available_quantity <= self.reorder_point

    def __repr__(self):
        return (
            f"<StockLevel product={self.product_id} variation={self.variation_id} "
            f"location={self.location_id} qty={self.quantity}>"
        )


class StockMovement(Base):
    """Signed stock change at a location."""

    __tablename__ = "stock_movements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    variation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_variations.id", ondelete="CASCADE"), nullable=True
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stock_locations.id", ondelete="CASCADE"), nullable=False
    )

    movement_type: Mapped[StockMovementType] = mapped_column(
        SAEnum(
            StockMovementType,
            values_callable=enum_values,
            name="stock_movement_type_enum",
        ),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # Positive = add, negative = subtract

    reference_type: Mapped[Optional[str]] = mapped_column(
        String(30), nullable=True
    )  # order, transfer, manual
    reference_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        Index("ix_stock_movements_product_location", "product_id", "location_id"),
    )

    location = relationship("StockLocation")

    def __repr__(self):
        return f"<StockMovement {self.movement_type} qty={self.quantity}>"
