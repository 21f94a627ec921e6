from __future__ import annotations
import logging
import re
from typing import Optional

from database import create_document, create_documents, delete_document, find_document, object_id, update_document
from errors import InvalidStatusTransition, LookupMissError
from schemas import Breakdown, CartItem, CustomerInfo, Order, OrderItem, OrderStatus, PaymentMethod, StoredOrder

logger = logging.getLogger(__name__)

# Merchant workflow: one forward step at a time, cancel only while pending
TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.PAID, OrderStatus.CANCELLED),
    OrderStatus.PAID: (OrderStatus.SHIPPED,),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    """The forward action offered to the merchant, if any."""
    targets = [s for s in TRANSITIONS[status] if s is not OrderStatus.CANCELLED]
    return targets[0] if targets else None


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in TRANSITIONS[current]


class OrderStore:
    """Order headers live in "order", their lines in "order_item"."""

    async def create_order(self, header: Order) -> str:
        saved = await create_document("order", header)
        return saved["id"]

    async def create_order_items(self, order_id: str, items: list[OrderItem]) -> None:
        await create_documents("order_item", items)

    async def delete_order(self, order_id: str) -> None:
        oid = object_id(order_id)
        await delete_document("order_item", {"order_id": order_id})
        if oid is not None:
            await delete_document("order", {"_id": oid})

    async def find_order(self, order_id: str, store_id: Optional[str] = None, email: Optional[str] = None) -> Optional[StoredOrder]:
        oid = object_id(order_id.strip())
        if oid is None:
            return None
        filter_dict = {"_id": oid}
        if store_id is not None:
            filter_dict["store_id"] = store_id
        if email is not None:
            filter_dict["customer_email"] = {"$regex": f"^{re.escape(email.strip())}$", "$options": "i"}
        doc = await find_document("order", filter_dict)
        return StoredOrder(**doc) if doc else None

    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        oid = object_id(order_id)
        matched = await update_document("order", {"_id": oid}, {"status": status}) if oid else 0
        if not matched:
            raise LookupMissError("Order not found.")


def build_order_header(store_id: str, customer: CustomerInfo, breakdown: Breakdown, payment_method: PaymentMethod) -> Order:
    return Order(
        store_id=store_id,
        **customer.model_dump(),
        total_amount=breakdown.total,
        discount_amount=breakdown.discount,
        shipping_amount=breakdown.shipping,
        coupon_code=breakdown.coupon_code,
        payment_method=payment_method,
        status=OrderStatus.PENDING,
    )


def build_order_items(order_id: str, items: list[CartItem]) -> list[OrderItem]:
    # Name, price and options are copied so later catalog edits leave the order alone
    return [
        OrderItem(
            order_id=order_id,
            product_id=item.product.id,
            product_name=item.product.name,
            quantity=item.quantity,
            unit_price=item.product.price,
            total_price=item.line_total,
            selected_options=dict(item.selected_options) if item.selected_options else None,
        )
        for item in items
    ]


async def change_order_status(store: OrderStore, store_id: str, order_id: str, new_status: OrderStatus) -> StoredOrder:
    # Scoped to the tenant: another store's order is reported as missing
    order = await store.find_order(order_id, store_id=store_id)
    if order is None:
        raise LookupMissError("Order not found.")
    if not can_transition(order.status, new_status):
        raise InvalidStatusTransition(f"Cannot move an order from {order.status.value} to {new_status.value}.")
    await store.update_order_status(order_id, new_status)
    logger.info("Order %s moved from %s to %s", order_id, order.status.value, new_status.value)
    return order.model_copy(update={"status": new_status})
