"""Stock operations: reservations at checkout, sales at shipping, restocks and transfers.

Every change to a StockLevel writes a StockMovement with a signed delta:
positive adds to what can be sold, negative removes from it.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.store_service.models import (
    Order,
    OrderItem,
    StockLevel,
    StockLocation,
    StockMovement,
    StockMovementType,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class InventoryError(Exception):
    """Raised when a stock operation would leave a level inconsistent."""


class InsufficientStockError(InventoryError):
    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_name}: "
            f"requested {requested}, available {available}"
        )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _variation_clause(variation_id: Optional[uuid.UUID]):
    if variation_id is None:
        return StockLevel.variation_id.is_(None)
    return StockLevel.variation_id == variation_id


async def get_stock_level(
    db: AsyncSession,
    *,
    product_id: uuid.UUID,
    variation_id: Optional[uuid.UUID],
    location_id: uuid.UUID,
    for_update: bool = False,
) -> Optional[StockLevel]:
    query = select(StockLevel).where(
        StockLevel.product_id == product_id,
        _variation_clause(variation_id),
        StockLevel.location_id == location_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_available_quantity(
    db: AsyncSession,
    product_id: uuid.UUID,
    variation_id: Optional[uuid.UUID] = None,
    *,
    any_variation: bool = False,
) -> int:
    """Sellable units across active locations.

    With ``any_variation`` the product's stock is summed over all its variations.
    """
    query = (
        select(
            func.coalesce(
                func.sum(StockLevel.quantity - StockLevel.reserved_quantity), 0
            )
        )
        .join(StockLocation, StockLocation.id == StockLevel.location_id)
        .where(
            StockLevel.product_id == product_id,
            StockLocation.is_active.is_(True),
        )
    )
    if not any_variation:
        query = query.where(_variation_clause(variation_id))
    result = await db.execute(query)
    return int(result.scalar_one())


def _record_movement(
    db: AsyncSession,
    level: StockLevel,
    movement_type: StockMovementType,
    quantity: int,
    *,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    notes: Optional[str] = None,
    created_by: Optional[str] = None,
) -> StockMovement:
    movement = StockMovement(
        product_id=level.product_id,
        variation_id=level.variation_id,
        location_id=level.location_id,
        movement_type=movement_type,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=created_by,
    )
    db.add(movement)
    return movement


# ---------------------------------------------------------------------------
# Order reservations
# ---------------------------------------------------------------------------


async def reserve_order_item(
    db: AsyncSession,
    order: Order,
    item: OrderItem,
    *,
    performed_by: str,
) -> StockLevel:
    """Reserve one order line at the active location with the most available stock.

    The whole line must fit at a single location.
    """
    result = await db.execute(
        select(StockLevel)
        .join(StockLocation, StockLocation.id == StockLevel.location_id)
        .where(
            StockLevel.product_id == item.product_id,
            _variation_clause(item.variation_id),
            StockLocation.is_active.is_(True),
        )
        .with_for_update()
    )
    levels = list(result.scalars().all())
    best = max(levels, key=lambda lvl: lvl.available_quantity, default=None)
    available = best.available_quantity if best else 0

    if best is None or available < item.quantity:
        label = item.product_name
        if item.variation_name:
            label = f"{label} ({item.variation_name})"
        raise InsufficientStockError(label, item.quantity, available)

    best.reserved_quantity += item.quantity
    item.stock_location_id = best.location_id
    _record_movement(
        db,
        best,
        StockMovementType.RESERVATION,
        -item.quantity,
        reference_type="order",
        reference_id=str(order.id),
        created_by=performed_by,
    )
    return best


async def _reserved_level(db: AsyncSession, item: OrderItem) -> Optional[StockLevel]:
    if item.stock_location_id is None:
        return None
    return await get_stock_level(
        db,
        product_id=item.product_id,
        variation_id=item.variation_id,
        location_id=item.stock_location_id,
        for_update=True,
    )


async def release_order_reservations(
    db: AsyncSession,
    order: Order,
    *,
    performed_by: str,
    notes: Optional[str] = None,
) -> int:
    """Give back every outstanding reservation of an order. Returns units released."""
    released = 0
    for item in order.items:
        level = await _reserved_level(db, item)
        if level is None:
            item.stock_location_id = None
            continue
        qty = min(item.quantity, level.reserved_quantity)
        level.reserved_quantity -= qty
        item.stock_location_id = None
        released += qty
        _record_movement(
            db,
            level,
            StockMovementType.RELEASE,
            qty,
            reference_type="order",
            reference_id=str(order.id),
            notes=notes,
            created_by=performed_by,
        )

    if released:
        logger.info(
            "Released %d reserved unit(s) for order %s", released, order.order_number
        )
    return released


async def commit_order_sale(
    db: AsyncSession,
    order: Order,
    *,
    performed_by: str,
) -> int:
    """Turn an order's reservations into sales: on-hand and reserved both drop."""
    sold = 0
    for item in order.items:
        level = await _reserved_level(db, item)
        if level is None:
            continue
        qty = min(item.quantity, level.reserved_quantity)
        level.reserved_quantity -= qty
        level.quantity -= qty
        item.stock_location_id = None
        sold += qty
        _record_movement(
            db,
            level,
            StockMovementType.SALE,
            -qty,
            reference_type="order",
            reference_id=str(order.id),
            created_by=performed_by,
        )
    return sold


# ---------------------------------------------------------------------------
# Back-office stock changes
# ---------------------------------------------------------------------------


async def set_stock_quantity(
    db: AsyncSession,
    *,
    product_id: uuid.UUID,
    variation_id: Optional[uuid.UUID],
    location_id: uuid.UUID,
    quantity: int,
    performed_by: str,
    reorder_point: Optional[int] = None,
    notes: Optional[str] = None,
) -> tuple[StockLevel, bool]:
    """Create a stock level or set its on-hand quantity.

    Returns ``(level, created)``. A new level or an increase is logged as a
    restock, a decrease as an adjustment.
    """
    level = await get_stock_level(
        db,
        product_id=product_id,
        variation_id=variation_id,
        location_id=location_id,
        for_update=True,
    )
    created = level is None
    if created:
        level = StockLevel(
            product_id=product_id,
            variation_id=variation_id,
            location_id=location_id,
            quantity=0,
            reserved_quantity=0,
        )
        db.add(level)

    if quantity < level.reserved_quantity:
        raise InventoryError(
            f"Quantity cannot be less than reserved quantity ({level.reserved_quantity})"
        )

    delta = quantity - level.quantity
    level.quantity = quantity
    level.last_recount_at = utc_now()
    if reorder_point is not None:
        level.reorder_point = reorder_point

    if delta:
        _record_movement(
            db,
            level,
            StockMovementType.RESTOCK if delta > 0 else StockMovementType.ADJUSTMENT,
            delta,
            reference_type="manual",
            notes=notes,
            created_by=performed_by,
        )
    return level, created


async def transfer_stock(
    db: AsyncSession,
    *,
    product_id: uuid.UUID,
    variation_id: Optional[uuid.UUID],
    from_location_id: uuid.UUID,
    to_location_id: uuid.UUID,
    quantity: int,
    performed_by: str,
    notes: Optional[str] = None,
) -> tuple[StockLevel, StockLevel]:
    """Move available stock between two active locations."""
    if quantity <= 0:
        raise InventoryError("Transfer quantity must be positive")
    if from_location_id == to_location_id:
        raise InventoryError("Source and destination locations must be different")

    result = await db.execute(
        select(StockLocation).where(
            StockLocation.id.in_([from_location_id, to_location_id])
        )
    )
    locations = {loc.id: loc for loc in result.scalars().all()}
    for location_id in (from_location_id, to_location_id):
        location = locations.get(location_id)
        if location is None or not location.is_active:
            raise InventoryError(f"Location {location_id} is not an active location")

    source = await get_stock_level(
        db,
        product_id=product_id,
        variation_id=variation_id,
        location_id=from_location_id,
        for_update=True,
    )
    available = source.available_quantity if source else 0
    if source is None or available < quantity:
        raise InventoryError(
            f"Insufficient stock at source location: available {available}, "
            f"requested {quantity}"
        )

    destination = await get_stock_level(
        db,
        product_id=product_id,
        variation_id=variation_id,
        location_id=to_location_id,
        for_update=True,
    )
    if destination is None:
        destination = StockLevel(
            product_id=product_id,
            variation_id=variation_id,
            location_id=to_location_id,
            quantity=0,
            reserved_quantity=0,
        )
        db.add(destination)

    source.quantity -= quantity
    destination.quantity += quantity

    transfer_ref = str(uuid.uuid4())
    for level, movement_type, delta in (
        (source, StockMovementType.TRANSFER_OUT, -quantity),
        (destination, StockMovementType.TRANSFER_IN, quantity),
    ):
        _record_movement(
            db,
            level,
            movement_type,
            delta,
            reference_type="transfer",
            reference_id=transfer_ref,
            notes=notes,
            created_by=performed_by,
        )

    logger.info(
        "Transferred %d unit(s) of product %s from %s to %s",
        quantity,
        product_id,
        from_location_id,
        to_location_id,
    )
    return source, destination
