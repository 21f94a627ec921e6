from __future__ import annotations
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from database import create_document, delete_document, find_document, object_id, update_document
from errors import InvalidCouponError, LookupMissError
from schemas import AppliedCoupon, Coupon, Result

logger = logging.getLogger(__name__)

INVALID_COUPON = "Invalid or expired coupon."
COUPON_LOOKUP_FAILED = "Could not validate coupon."
PERCENTAGE_OUT_OF_RANGE = "The percentage must be greater than 0 and at most 100."


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class CouponValidator:
    def __init__(self, catalog):
        self.catalog = catalog

    async def validate(self, code: str, store_id: str, subtotal: Optional[Decimal] = None) -> Result[AppliedCoupon]:
        """Resolve a shopper-entered code against one store's active coupons.

        Not found, inactive and another store's coupon all give the same
        message. ``subtotal`` is accepted for minimum-spend rules; none are
        enforced.
        """
        normalized = normalize_code(code)
        if not normalized:
            return Result[AppliedCoupon].failure(INVALID_COUPON)
        try:
            coupon = await self.catalog.fetch_coupon(store_id, normalized)
        except Exception:
            logger.exception("Coupon lookup failed for store %s", store_id)
            return Result[AppliedCoupon].failure(COUPON_LOOKUP_FAILED)

        if coupon is None or not coupon.active or coupon.store_id != store_id or coupon.code != normalized:
            logger.info("Rejected coupon %r for store %s", normalized, store_id)
            return Result[AppliedCoupon].failure(INVALID_COUPON)
        return Result[AppliedCoupon].success(AppliedCoupon(code=coupon.code, discount_percentage=coupon.discount_percentage))


# -----------------------------
# Merchant administration
# -----------------------------

def build_coupon(store_id: str, code: str, discount_percentage) -> Coupon:
    normalized = normalize_code(code)
    if not normalized or not normalized.isalnum() or not normalized.isascii():
        raise InvalidCouponError("Coupon code must be letters and digits only.")
    try:
        percentage = Decimal(str(discount_percentage))
    except InvalidOperation:
        raise InvalidCouponError(PERCENTAGE_OUT_OF_RANGE)
    if not percentage.is_finite() or percentage <= 0 or percentage > 100:
        raise InvalidCouponError(PERCENTAGE_OUT_OF_RANGE)
    return Coupon(store_id=store_id, code=normalized, discount_percentage=percentage, active=True)


async def create_coupon(store_id: str, code: str, discount_percentage) -> Coupon:
    coupon = build_coupon(store_id, code, discount_percentage)
    if await find_document("coupon", {"store_id": store_id, "code": coupon.code}):
        raise InvalidCouponError("Coupon code already exists.")
    saved = await create_document("coupon", coupon.model_dump(exclude={"id"}))
    return Coupon(**saved)


async def toggle_coupon(store_id: str, coupon_id: str) -> Coupon:
    oid = object_id(coupon_id)
    doc = await find_document("coupon", {"_id": oid, "store_id": store_id}) if oid else None
    if doc is None:
        raise LookupMissError("Coupon not found.")
    await update_document("coupon", {"_id": oid}, {"active": not doc["active"]})
    doc["active"] = not doc["active"]
    logger.info("Coupon %s %s", doc["code"], "activated" if doc["active"] else "deactivated")
    return Coupon(**doc)


async def delete_coupon(store_id: str, coupon_id: str) -> None:
    oid = object_id(coupon_id)
    deleted = await delete_document("coupon", {"_id": oid, "store_id": store_id}) if oid else 0
    if not deleted:
        raise LookupMissError("Coupon not found.")

