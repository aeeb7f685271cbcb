"""Shared fixtures: users of every role, their auth headers, a stocked catalog."""

from decimal import Decimal

import pytest
import pytest_asyncio
from services.members_service.models import UserRole
from services.members_service.routers._helpers import issue_access_token
from tests.factories import (
    ProductFactory,
    ProductVariationFactory,
    StockLevelFactory,
    StockLocationFactory,
    UserFactory,
)


def auth_headers_for(user) -> dict:
    return {"Authorization": f"Bearer {issue_access_token(user)}"}


async def make_user(db_session, **overrides):
    user = UserFactory.create(**overrides)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def customer(db_session):
    return await make_user(db_session, name="Casey Customer")


@pytest_asyncio.fixture
async def admin_user(db_session):
    return await make_user(db_session, name="Alex Admin", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def distributor(db_session):
    return await make_user(
        db_session, name="Dana Distributor", role=UserRole.DISTRIBUTOR
    )


@pytest_asyncio.fixture
async def wholesale_buyer(db_session):
    return await make_user(
        db_session, name="Wes Wholesale", role=UserRole.WHOLESALE_BUYER
    )


@pytest_asyncio.fixture
async def referrer(db_session):
    return await make_user(
        db_session,
        name="Riley Referrer",
        role=UserRole.RETAIL_REFERRER,
        referral_code="RILEY123",
    )


@pytest.fixture
def customer_headers(customer):
    return auth_headers_for(customer)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers_for(admin_user)


@pytest.fixture
def distributor_headers(distributor):
    return auth_headers_for(distributor)


@pytest.fixture
def wholesale_headers(wholesale_buyer):
    return auth_headers_for(wholesale_buyer)


@pytest_asyncio.fixture
async def warehouse(db_session):
    location = StockLocationFactory.create(name="Main Warehouse")
    db_session.add(location)
    await db_session.commit()
    return location


@pytest_asyncio.fixture
async def product(db_session, warehouse):
    """An active product at $15.00 with 100 units in the warehouse."""
    product = ProductFactory.create(name="Cool Mint", price=Decimal("15.00"))
    db_session.add(product)
    await db_session.flush()
    db_session.add(StockLevelFactory.create(product.id, warehouse.id, quantity=100))
    await db_session.commit()
    return product


@pytest_asyncio.fixture
async def variation(db_session, product, warehouse):
    """An $18.00 variation of ``product`` with 20 units in the warehouse."""
    variation = ProductVariationFactory.create(
        product_id=product.id, sku="HP-MINT-12", price=Decimal("18.00")
    )
    db_session.add(variation)
    await db_session.flush()
    db_session.add(
        StockLevelFactory.create(
            product.id, warehouse.id, variation_id=variation.id, quantity=20
        )
    )
    await db_session.commit()
    return variation
