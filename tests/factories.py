"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    user = UserFactory.create(email="custom@example.com")
    db_session.add(user)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from functools import lru_cache

DEFAULT_PASSWORD = "correct-horse-42"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@example.com"


@lru_cache
def _password_hash() -> str:
    from libs.auth.security import get_password_hash

    return get_password_hash(DEFAULT_PASSWORD)


def address(**overrides) -> dict:
    data = {
        "name": "Test Buyer",
        "street": "100 Rink Rd",
        "city": "Toronto",
        "state": "ON",
        "postal_code": "M5V 1A1",
        "country": "CA",
    }
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# Members Service
# ---------------------------------------------------------------------------


class UserFactory:
    @staticmethod
    def create(**overrides):
        from services.members_service.models import User, UserRole, UserStatus

        defaults = {
            "id": _uuid(),
            "name": "Test User",
            "email": _unique_email(),
            "password_hash": _password_hash(),
            "role": UserRole.CUSTOMER,
            "status": UserStatus.ACTIVE,
            "referral_code": uuid.uuid4().hex[:8].upper(),
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return User(**defaults)


class WholesaleApplicationFactory:
    @staticmethod
    def create(user_id=None, **overrides):
        from services.members_service.models import (
            WholesaleApplication,
            WholesaleApplicationStatus,
        )

        defaults = {
            "id": _uuid(),
            "user_id": user_id or _uuid(),
            "business_name": "Blue Line Pro Shop",
            "business_type": "Retail",
            "address": address(),
            "phone": "416-555-0100",
            "status": WholesaleApplicationStatus.PENDING,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return WholesaleApplication(**defaults)


# ---------------------------------------------------------------------------
# Store Service
# ---------------------------------------------------------------------------


class ProductFactory:
    @staticmethod
    def create(**overrides):
        from services.store_service.models import Product

        defaults = {
            "id": _uuid(),
            "name": f"Cool Mint {uuid.uuid4().hex[:4]}",
            "description": "Slim pouches",
            "category": "Pouches",
            "flavor": "Mint",
            "strength": 6,
            "price": Decimal("15.00"),
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Product(**defaults)


class ProductVariationFactory:
    @staticmethod
    def create(product_id=None, **overrides):
        from services.store_service.models import ProductVariation

        defaults = {
            "id": _uuid(),
            "product_id": product_id or _uuid(),
            "name": "Cool Mint (12mg)",
            "flavor": "Mint",
            "strength": 12,
            "price": Decimal("18.00"),
            "sku": f"HP-{uuid.uuid4().hex[:6].upper()}",
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return ProductVariation(**defaults)


class StockLocationFactory:
    @staticmethod
    def create(**overrides):
        from services.store_service.models import StockLocation, StockLocationType

        defaults = {
            "id": _uuid(),
            "name": f"Warehouse {uuid.uuid4().hex[:4]}",
            "type": StockLocationType.WAREHOUSE,
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return StockLocation(**defaults)


class StockLevelFactory:
    @staticmethod
    def create(product_id, location_id, **overrides):
        from services.store_service.models import StockLevel

        defaults = {
            "id": _uuid(),
            "product_id": product_id,
            "variation_id": None,
            "location_id": location_id,
            "quantity": 100,
            "reserved_quantity": 0,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return StockLevel(**defaults)


class OrderFactory:
    @staticmethod
    def create(user_id, **overrides):
        from services.store_service.models import (
            Order,
            OrderPaymentStatus,
            OrderStatus,
            OrderType,
            PaymentMethod,
        )

        defaults = {
            "id": _uuid(),
            "order_number": Order.generate_order_number(),
            "user_id": user_id,
            "type": OrderType.RETAIL,
            "status": OrderStatus.PENDING_APPROVAL,
            "payment_method": PaymentMethod.E_TRANSFER,
            "payment_status": OrderPaymentStatus.PENDING,
            "subtotal": Decimal("30.00"),
            "shipping_cost": Decimal("10.00"),
            "tax_amount": Decimal("3.90"),
            "discount_amount": Decimal("0.00"),
            "total_amount": Decimal("43.90"),
            "shipping_address": address(),
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Order(**defaults)


class OrderItemFactory:
    @staticmethod
    def create(order_id, product_id, **overrides):
        from services.store_service.models import OrderItem

        quantity = overrides.pop("quantity", 2)
        unit_price = overrides.pop("unit_price", Decimal("15.00"))
        defaults = {
            "id": _uuid(),
            "order_id": order_id,
            "product_id": product_id,
            "variation_id": None,
            "product_name": "Cool Mint",
            "unit_price": unit_price,
            "quantity": quantity,
            "line_total": unit_price * quantity,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return OrderItem(**defaults)


class TaskFactory:
    @staticmethod
    def create(**overrides):
        from services.store_service.models import (
            Task,
            TaskCategory,
            TaskPriority,
            TaskStatus,
        )

        defaults = {
            "id": _uuid(),
            "title": "Follow up",
            "status": TaskStatus.PENDING,
            "priority": TaskPriority.MEDIUM,
            "category": TaskCategory.OTHER,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Task(**defaults)


# ---------------------------------------------------------------------------
# Payments Service
# ---------------------------------------------------------------------------


class DiscountCodeFactory:
    @staticmethod
    def create(**overrides):
        from services.payments_service.models import DiscountCode, DiscountType

        defaults = {
            "id": _uuid(),
            "code": f"SAVE{uuid.uuid4().hex[:5].upper()}",
            "description": "Test discount",
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("10.00"),
            "starts_at": _now() - timedelta(days=1),
            "ends_at": _now() + timedelta(days=30),
            "times_used": 0,
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return DiscountCode(**defaults)


class PaymentFactory:
    @staticmethod
    def create(order_id, user_id, **overrides):
        from services.payments_service.models import (
            Payment,
            PaymentProvider,
            PaymentStatus,
        )
        from services.store_service.models import PaymentMethod

        defaults = {
            "id": _uuid(),
            "order_id": order_id,
            "user_id": user_id,
            "amount": Decimal("43.90"),
            "currency": "cad",
            "payment_method": PaymentMethod.CREDIT_CARD,
            "status": PaymentStatus.PENDING,
            "provider": PaymentProvider.STRIPE,
            "transaction_id": f"pi_{uuid.uuid4().hex[:16]}",
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Payment(**defaults)


class CommissionFactory:
    @staticmethod
    def create(user_id, order_id, **overrides):
        from services.payments_service.models import (
            Commission,
            CommissionStatus,
            CommissionType,
        )

        defaults = {
            "id": _uuid(),
            "user_id": user_id,
            "order_id": order_id,
            "amount": Decimal("2.20"),
            "rate": Decimal("0.0500"),
            "type": CommissionType.ORDER_REFERRAL,
            "status": CommissionStatus.PENDING,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Commission(**defaults)
