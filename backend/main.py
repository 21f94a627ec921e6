from __future__ import annotations
import logging
import os
from decimal import Decimal
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from cart import CartStore
from catalog import Catalog
from checkout import Checkout
from coupons import create_coupon, delete_coupon, toggle_coupon
from database import get_db, settings
from errors import CheckoutValidationError, InvalidStatusTransition, LookupMissError, StorefrontError
from orders import OrderStore, change_order_status, next_status
from schemas import Breakdown, CartItem, Coupon, CouponIn, CustomerInfo, OrderReceipt, OrderStatus, PaymentMethod, Product, StoredOrder
from sessions import SessionRegistry

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront API")

# Allow all origins for the storefront skins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.registry = SessionRegistry(Catalog(), OrderStore(), settings.CART_STORAGE_DIR, settings.MAX_SESSIONS)

STATUS_CODES = {
    CheckoutValidationError: 400,
    LookupMissError: 404,
    InvalidStatusTransition: 409,
}


def http_error(error: StorefrontError) -> HTTPException:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=503, detail=error.message)


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_cart(
    session_id: str = Header(..., alias="X-Session-Id"),
    registry: SessionRegistry = Depends(get_registry),
) -> CartStore:
    try:
        return registry.cart(session_id)
    except StorefrontError as e:
        raise http_error(e)


def get_checkout(
    store_id: str,
    session_id: str = Header(..., alias="X-Session-Id"),
    registry: SessionRegistry = Depends(get_registry),
) -> Checkout:
    try:
        return registry.checkout(session_id, store_id)
    except StorefrontError as e:
        raise http_error(e)


@app.get("/")
async def root():
    return {"message": "Storefront Backend Running"}


@app.get("/test")
async def test():
    try:
        db = await get_db()
        colls = await db.list_collection_names()
        return {
            "backend": "✅ Running",
            "database": "✅ Connected & Working",
            "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
            "database_name": db.name,
            "connection_status": "Connected",
            "collections": colls[:10],
        }
    except Exception as e:
        return {"backend": "✅ Running", "database": f"❌ Error: {str(e)[:50]}", "connection_status": "Not Connected"}


# -----------------------------
# Storefront catalog
# -----------------------------

@app.get("/stores/{store_id}/products", response_model=list[Product])
async def list_products(store_id: str, category: Optional[str] = Query(None), registry: SessionRegistry = Depends(get_registry)):
    return await registry.catalog.list_products(store_id, category)


@app.get("/stores/{store_id}/categories", response_model=list[str])
async def list_categories(store_id: str, registry: SessionRegistry = Depends(get_registry)):
    return await registry.catalog.list_categories(store_id)


# -----------------------------
# Cart
# -----------------------------

class CartOut(BaseModel):
    items: list[CartItem]
    total: Decimal
    count: int


class CartLineIn(BaseModel):
    product_id: str
    quantity: int = Field(default=1)
    options: Optional[dict[str, str]] = None


class CartLineRef(BaseModel):
    product_id: str
    options: Optional[dict[str, str]] = None


def cart_out(cart: CartStore) -> CartOut:
    return CartOut(items=cart.items, total=cart.total, count=cart.count)


@app.get("/cart", response_model=CartOut)
async def read_cart(cart: CartStore = Depends(get_cart)):
    return cart_out(cart)


@app.post("/cart/items", response_model=CartOut)
async def add_to_cart(payload: CartLineIn, cart: CartStore = Depends(get_cart), registry: SessionRegistry = Depends(get_registry)):
    try:
        product = await registry.catalog.fetch_product(payload.product_id)
    except Exception:
        logger.exception("Product lookup failed for %s", payload.product_id)
        raise HTTPException(status_code=503, detail="Could not load product. Please try again.")
    if product is None or not product.active:
        raise HTTPException(status_code=404, detail="Product not found")
    try:
        cart.add_to_cart(product, payload.quantity, payload.options)
    except StorefrontError as e:
        raise http_error(e)
    return cart_out(cart)


@app.patch("/cart/items", response_model=CartOut)
async def update_quantity(payload: CartLineIn, cart: CartStore = Depends(get_cart)):
    try:
        cart.update_quantity(payload.product_id, payload.quantity, payload.options)
    except StorefrontError as e:
        raise http_error(e)
    return cart_out(cart)


@app.delete("/cart/items", response_model=CartOut)
async def remove_from_cart(payload: CartLineRef, cart: CartStore = Depends(get_cart)):
    cart.remove_from_cart(payload.product_id, payload.options)
    return cart_out(cart)


# -----------------------------
# Checkout
# -----------------------------

class CouponCode(BaseModel):
    code: str


class SubmitOrderIn(BaseModel):
    customer: CustomerInfo
    payment_method: PaymentMethod


@app.get("/stores/{store_id}/checkout", response_model=Breakdown)
async def checkout_breakdown(checkout: Checkout = Depends(get_checkout)):
    result = await checkout.breakdown()
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.error)
    return result.value


@app.post("/stores/{store_id}/checkout/coupon", response_model=Breakdown)
async def apply_coupon(payload: CouponCode, checkout: Checkout = Depends(get_checkout)):
    result = await checkout.apply_coupon(payload.code)
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.error)
    return result.value


@app.delete("/stores/{store_id}/checkout/coupon", response_model=Breakdown)
async def remove_coupon(checkout: Checkout = Depends(get_checkout)):
    checkout.remove_coupon()
    return await checkout_breakdown(checkout)


@app.post("/stores/{store_id}/checkout", response_model=OrderReceipt, status_code=201)
async def submit_order(payload: SubmitOrderIn, checkout: Checkout = Depends(get_checkout)):
    result = await checkout.submit_order(payload.customer, payload.payment_method)
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.error)
    return result.value


# -----------------------------
# Merchant: coupons and orders
# -----------------------------

@app.post("/stores/{store_id}/coupons", response_model=Coupon, status_code=201)
async def add_coupon(store_id: str, payload: CouponIn):
    try:
        return await create_coupon(store_id, payload.code, payload.discount_percentage)
    except StorefrontError as e:
        raise http_error(e)


@app.patch("/stores/{store_id}/coupons/{coupon_id}", response_model=Coupon)
async def switch_coupon(store_id: str, coupon_id: str):
    try:
        return await toggle_coupon(store_id, coupon_id)
    except StorefrontError as e:
        raise http_error(e)


@app.delete("/stores/{store_id}/coupons/{coupon_id}", status_code=204)
async def remove_store_coupon(store_id: str, coupon_id: str):
    try:
        await delete_coupon(store_id, coupon_id)
    except StorefrontError as e:
        raise http_error(e)


class StatusIn(BaseModel):
    status: OrderStatus


class OrderOut(BaseModel):
    order: StoredOrder
    next_status: Optional[OrderStatus] = None


@app.patch("/stores/{store_id}/orders/{order_id}/status", response_model=OrderOut)
async def update_order_status(store_id: str, order_id: str, payload: StatusIn, registry: SessionRegistry = Depends(get_registry)):
    try:
        order = await change_order_status(registry.orders, store_id, order_id, payload.status)
    except StorefrontError as e:
        raise http_error(e)
    return OrderOut(order=order, next_status=next_status(order.status))


class TrackIn(BaseModel):
    order_id: str
    email: str


@app.post("/stores/{store_id}/orders/track", response_model=OrderOut)
async def track_order(store_id: str, payload: TrackIn, registry: SessionRegistry = Depends(get_registry)):
    try:
        order = await registry.orders.find_order(payload.order_id, store_id=store_id, email=payload.email)
    except Exception:
        logger.exception("Order lookup failed for store %s", store_id)
        raise HTTPException(status_code=503, detail="Could not look up the order. Please try again.")
    if order is None:
        raise HTTPException(status_code=404, detail="We could not find an order with that id and email.")
    return OrderOut(order=order, next_status=next_status(order.status))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
