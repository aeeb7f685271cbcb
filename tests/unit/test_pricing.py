"""Unit tests for order total calculation."""

from decimal import Decimal

import pytest
from services.store_service.services.pricing import (
    calculate_order_totals,
    quantize_money,
    to_minor_units,
)


@pytest.mark.unit
def test_totals_use_flat_shipping_and_tax_on_subtotal():
    totals = calculate_order_totals(Decimal("30.00"))

    assert totals.shipping == Decimal("10.00")
    assert totals.tax == Decimal("3.90")
    assert totals.discount == Decimal("0.00")
    assert totals.total == Decimal("43.90")


@pytest.mark.unit
def test_tax_is_charged_before_discount():
    totals = calculate_order_totals(Decimal("100.00"), discount=Decimal("20.00"))

    assert totals.tax == Decimal("13.00")
    assert totals.total == Decimal("103.00")


@pytest.mark.unit
def test_discount_never_exceeds_subtotal():
    totals = calculate_order_totals(
        Decimal("12.00"), discount=Decimal("50.00"), shipping=Decimal("0"), tax_rate=0
    )

    assert totals.discount == Decimal("12.00")
    assert totals.total == Decimal("0.00")


@pytest.mark.unit
def test_quantize_rounds_half_up():
    assert quantize_money("2.345") == Decimal("2.35")
    assert quantize_money(Decimal("2.344")) == Decimal("2.34")
    assert quantize_money(7) == Decimal("7.00")


@pytest.mark.unit
def test_minor_units_for_card_payments():
    assert to_minor_units(Decimal("43.90")) == 4390
    assert to_minor_units(Decimal("0.015")) == 2
