from decimal import Decimal

import pytest

from conftest import make_product
from errors import EmptyCartError
from money import format_currency, round2
from pricing import compute_breakdown
from schemas import AppliedCoupon, CartItem, ShippingConfig


def line(price, quantity=1, product_id="p1"):
    return CartItem(product=make_product(product_id, price), quantity=quantity)


def shipping(cost="15.00", threshold=None):
    return ShippingConfig(
        fixed_shipping_cost=Decimal(cost),
        free_shipping_threshold=Decimal(threshold) if threshold is not None else None,
    )


def test_breakdown_without_coupon_or_threshold():
    breakdown = compute_breakdown([line("50.00", 2)], shipping("15.00"))

    assert breakdown.subtotal == Decimal("100.00")
    assert breakdown.discount == Decimal("0")
    assert breakdown.shipping == Decimal("15.00")
    assert breakdown.total == Decimal("115.00")
    assert breakdown.amount_to_free_shipping is None


def test_breakdown_is_deterministic():
    items = [line("19.99", 3), line("5.01", 1, "p2")]
    coupon = AppliedCoupon(code="SAVE15", discount_percentage=Decimal("15"))

    first = compute_breakdown(items, shipping("9.90", "80.00"), coupon)
    second = compute_breakdown(items, shipping("9.90", "80.00"), coupon)

    assert first.model_dump_json() == second.model_dump_json()


@pytest.mark.parametrize("subtotal, expected_shipping", [
    ("100.00", Decimal("0")),
    ("99.99", Decimal("12.50")),
    ("150.00", Decimal("0")),
])
def test_free_shipping_boundary(subtotal, expected_shipping):
    breakdown = compute_breakdown([line(subtotal)], shipping("12.50", "100.00"))

    assert breakdown.shipping == expected_shipping
    assert breakdown.free_shipping == (expected_shipping == 0)


def test_amount_to_free_shipping_is_reported_while_shipping_is_charged():
    breakdown = compute_breakdown([line("60.00")], shipping("12.50", "100.00"))

    assert breakdown.amount_to_free_shipping == Decimal("40.00")


def test_free_shipping_is_judged_before_the_discount():
    coupon = AppliedCoupon(code="HALF", discount_percentage=Decimal("50"))

    breakdown = compute_breakdown([line("100.00")], shipping("12.50", "100.00"), coupon)

    assert breakdown.discount == Decimal("50.00")
    assert breakdown.shipping == Decimal("0")
    assert breakdown.total == Decimal("50.00")


def test_discount_rounds_half_up_to_cents():
    coupon = AppliedCoupon(code="THIRD", discount_percentage=Decimal("33"))

    breakdown = compute_breakdown([line("10.00")], shipping("0"), coupon)

    assert breakdown.discount == Decimal("3.30")
    assert breakdown.total == Decimal("6.70")
    assert breakdown.coupon_code == "THIRD"


def test_discount_rounds_rather_than_truncates():
    coupon = AppliedCoupon(code="X", discount_percentage=Decimal("12.5"))

    breakdown = compute_breakdown([line("0.99")], shipping("5.00"), coupon)

    # 0.99 * 12.5% = 0.12375
    assert breakdown.discount == Decimal("0.12")
    assert breakdown.total == Decimal("5.87")


def test_zero_threshold_means_no_free_shipping():
    breakdown = compute_breakdown([line("10.00")], shipping("7.00", "0"))

    assert breakdown.shipping == Decimal("7.00")
    assert breakdown.amount_to_free_shipping is None


def test_empty_cart_cannot_be_priced():
    with pytest.raises(EmptyCartError):
        compute_breakdown([], shipping())


def test_round2_and_currency_format():
    assert round2("2.675") == Decimal("2.68")
    assert round2(Decimal("1.005")) == Decimal("1.01")
    assert format_currency(Decimal("1234.5")) == "R$ 1.234,50"
    assert format_currency(Decimal("0")) == "R$ 0,00"
    assert format_currency(Decimal("-3.2")) == "-R$ 3,20"
