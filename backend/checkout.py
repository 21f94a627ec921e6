from __future__ import annotations
import logging
from typing import Any, Optional

from pydantic import ValidationError

from cart import CartStore
from coupons import INVALID_COUPON, CouponValidator
from errors import CheckoutValidationError, StorefrontError
from orders import OrderStore, build_order_header, build_order_items
from pricing import cart_subtotal, compute_breakdown
from schemas import AppliedCoupon, Breakdown, CartItem, CustomerInfo, OrderReceipt, PaymentMethod, Result

logger = logging.getLogger(__name__)

ORDER_FAILED = "We could not place your order. Please try again."
STORE_UNAVAILABLE = "This store is unavailable right now. Please try again."


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return f"{field}: {first['msg']}"


class Checkout:
    """One shopper's checkout against one store.

    Holds at most one applied coupon. Every public coroutine returns a
    ``Result``; lookup and persistence failures never escape.
    """

    def __init__(self, store_id: str, cart: CartStore, catalog, orders: Optional[OrderStore] = None):
        self.store_id = store_id
        self.cart = cart
        self.catalog = catalog
        self.orders = orders or OrderStore()
        self.coupons = CouponValidator(catalog)
        self.applied_coupon: Optional[AppliedCoupon] = None

    @property
    def items(self) -> list[CartItem]:
        """Cart lines sold by this store; lines from other stores stay in the cart untouched."""
        return [item for item in self.cart.items if item.product.store_id == self.store_id]

    async def breakdown(self) -> Result[Breakdown]:
        try:
            shipping_config = await self.catalog.fetch_shipping_config(self.store_id)
            return Result[Breakdown].success(compute_breakdown(self.items, shipping_config, self.applied_coupon))
        except StorefrontError as e:
            return Result[Breakdown].failure(e.message)
        except Exception:
            logger.exception("Could not load shipping settings for store %s", self.store_id)
            return Result[Breakdown].failure(STORE_UNAVAILABLE)

    async def apply_coupon(self, code: str) -> Result[Breakdown]:
        # A new code always replaces the previous one, even when it is rejected
        self.applied_coupon = None
        if not self.items:
            return Result[Breakdown].failure("Your cart is empty.")
        result = await self.coupons.validate(code, self.store_id, cart_subtotal(self.items))
        if not result.ok:
            return Result[Breakdown].failure(result.error)
        self.applied_coupon = result.value
        return await self.breakdown()

    def remove_coupon(self) -> None:
        self.applied_coupon = None

    async def submit_order(self, customer: CustomerInfo | dict[str, Any], payment_method: str | PaymentMethod) -> Result[OrderReceipt]:
        try:
            if not isinstance(customer, CustomerInfo):
                customer = CustomerInfo.model_validate(customer)
            method = PaymentMethod(payment_method)
        except ValidationError as e:
            return Result[OrderReceipt].failure(_describe(e))
        except ValueError:
            return Result[OrderReceipt].failure(f"Unknown payment method: {payment_method}.")
        if not self.items:
            return Result[OrderReceipt].failure("Your cart is empty.")

        try:
            store = await self.catalog.fetch_store(self.store_id)
        except Exception:
            logger.exception("Could not load store %s", self.store_id)
            return Result[OrderReceipt].failure(STORE_UNAVAILABLE)
        if store is None:
            return Result[OrderReceipt].failure("Store not found.")
        if method is PaymentMethod.PIX and not store.pix_key:
            return Result[OrderReceipt].failure("This store does not accept Pix yet.")

        if self.applied_coupon is not None:
            recheck = await self.coupons.validate(self.applied_coupon.code, self.store_id)
            if not recheck.ok:
                # Only a real rejection drops the coupon; a failed lookup can be retried
                if recheck.error == INVALID_COUPON:
                    self.applied_coupon = None
                return Result[OrderReceipt].failure(recheck.error)
            self.applied_coupon = recheck.value

        items = self.items
        try:
            breakdown = compute_breakdown(items, store.shipping_config, self.applied_coupon)
        except CheckoutValidationError as e:
            return Result[OrderReceipt].failure(e.message)

        header = build_order_header(self.store_id, customer, breakdown, method)
        try:
            order_id = await self.orders.create_order(header)
        except Exception:
            logger.exception("Order header insert failed for store %s", self.store_id)
            return Result[OrderReceipt].failure(ORDER_FAILED)

        try:
            await self.orders.create_order_items(order_id, build_order_items(order_id, items))
        except Exception:
            logger.exception("Order items insert failed for order %s, rolling back header", order_id)
            await self._compensate(order_id)
            return Result[OrderReceipt].failure(ORDER_FAILED)

        logger.info("Order %s created for store %s: total %s", order_id, self.store_id, breakdown.total)
        if len(items) == len(self.cart.items):
            self.cart.clear_cart()
        else:
            for item in items:
                self.cart.remove_from_cart(item.product.id, item.selected_options)
        self.applied_coupon = None
        return Result[OrderReceipt].success(
            OrderReceipt(
                order_id=order_id,
                total_amount=breakdown.total,
                payment_method=method,
                pix_key=store.pix_key if method is PaymentMethod.PIX else None,
                pix_instructions=store.pix_instructions if method is PaymentMethod.PIX else None,
            )
        )

    async def _compensate(self, order_id: str) -> None:
        try:
            await self.orders.delete_order(order_id)
        except Exception:
            logger.error("Order %s has no items and could not be removed", order_id, exc_info=True)
