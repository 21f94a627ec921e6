from __future__ import annotations
from decimal import Decimal
from typing import Iterable, Optional

from errors import EmptyCartError
from money import ZERO, round2
from schemas import AppliedCoupon, Breakdown, CartItem, ShippingConfig

HUNDRED = Decimal("100")


def cart_subtotal(items: Iterable[CartItem]) -> Decimal:
    return round2(sum((item.line_total for item in items), ZERO))


def compute_breakdown(
    items: list[CartItem],
    shipping_config: ShippingConfig,
    applied_coupon: Optional[AppliedCoupon] = None,
) -> Breakdown:
    """Price a cart at checkout.

    The steps run in a fixed order: subtotal, coupon discount, shipping,
    grand total. Free shipping is decided on the subtotal *before* the
    discount is taken off.
    """
    if not items:
        raise EmptyCartError()

    subtotal = cart_subtotal(items)

    discount = ZERO
    if applied_coupon is not None:
        discount = round2(subtotal * applied_coupon.discount_percentage / HUNDRED)

    threshold = shipping_config.free_shipping_threshold
    if not threshold:
        # a zero threshold means the store has not configured free shipping
        threshold = None
    free_shipping = threshold is not None and subtotal >= threshold
    shipping = ZERO if free_shipping else round2(shipping_config.fixed_shipping_cost)

    amount_to_free_shipping = None
    if threshold is not None and not free_shipping:
        amount_to_free_shipping = round2(threshold - subtotal)

    return Breakdown(
        subtotal=subtotal,
        discount=discount,
        shipping=shipping,
        total=round2(subtotal - discount + shipping),
        free_shipping=free_shipping,
        amount_to_free_shipping=amount_to_free_shipping,
        coupon_code=applied_coupon.code if applied_coupon else None,
    )
