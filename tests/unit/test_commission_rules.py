"""Unit tests for referral commission calculation."""

from decimal import Decimal

import pytest
from services.payments_service.models import CommissionStatus, CommissionType
from services.payments_service.services.commissions import (
    calculate_order_commission,
    compute_commission_amount,
)
from services.store_service.models import OrderType
from tests.factories import OrderFactory


async def _order(db, user, **overrides):
    order = OrderFactory.create(user.id, **overrides)
    db.add(order)
    await db.commit()
    return order


@pytest.mark.unit
@pytest.mark.parametrize(
    "total, rate, expected",
    [
        (Decimal("43.90"), Decimal("0.05"), Decimal("2.20")),
        (Decimal("100.00"), Decimal("0.075"), Decimal("7.50")),
        (Decimal("0.09"), Decimal("0.05"), Decimal("0.00")),
    ],
)
def test_commission_amount_rounds_half_up(total, rate, expected):
    assert compute_commission_amount(total, rate) == expected


@pytest.mark.asyncio
@pytest.mark.unit
async def test_applied_code_earns_default_rate(db_session, customer, referrer):
    order = await _order(
        db_session,
        customer,
        applied_referral_code=referrer.referral_code,
        total_amount=Decimal("200.00"),
    )

    commission, created = await calculate_order_commission(db_session, order)

    assert created is True
    assert commission.user_id == referrer.id
    assert commission.rate == Decimal("0.05")
    assert commission.amount == Decimal("10.00")
    assert commission.type == CommissionType.ORDER_REFERRAL
    assert commission.status == CommissionStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_referrer_rate_override_and_wholesale_type(
    db_session, wholesale_buyer, referrer
):
    referrer.commission_rate = Decimal("0.1000")
    wholesale_buyer.referred_by_id = referrer.id
    order = await _order(
        db_session,
        wholesale_buyer,
        type=OrderType.WHOLESALE,
        total_amount=Decimal("500.00"),
    )

    commission, created = await calculate_order_commission(db_session, order)

    assert created is True
    assert commission.amount == Decimal("50.00")
    assert commission.type == CommissionType.WHOLESALE_REFERRAL


@pytest.mark.asyncio
@pytest.mark.unit
async def test_calculation_is_idempotent(db_session, customer, referrer):
    order = await _order(
        db_session, customer, applied_referral_code=referrer.referral_code
    )

    first, _ = await calculate_order_commission(db_session, order)
    second, created = await calculate_order_commission(db_session, order)

    assert created is False
    assert second.id == first.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_self_referral_earns_nothing(db_session, referrer):
    order = await _order(
        db_session, referrer, applied_referral_code=referrer.referral_code
    )

    assert await calculate_order_commission(db_session, order) == (None, False)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_order_without_referrer_earns_nothing(db_session, customer):
    order = await _order(db_session, customer)

    assert await calculate_order_commission(db_session, order) == (None, False)
