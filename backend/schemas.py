from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, EmailStr, Field, field_validator

# Each stored class => one collection, lowercased name with an underscore
# (Product -> "product", OrderItem -> "order_item")

T = TypeVar("T")


class ProductOption(BaseModel):
    name: str
    values: list[str] = Field(default_factory=list)


class Product(BaseModel):
    id: str
    store_id: str
    name: str
    description: Optional[str] = None
    price: Decimal = Field(ge=0, decimal_places=2)
    stock: int = 0
    category: Optional[str] = None
    image_url: Optional[str] = None
    active: bool = True
    options: Optional[list[ProductOption]] = None

    @property
    def in_stock(self) -> bool:
        return self.stock > 0


class CartItem(BaseModel):
    product: Product
    quantity: int = Field(ge=1, default=1)
    selected_options: Optional[dict[str, str]] = None

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


class ShippingConfig(BaseModel):
    fixed_shipping_cost: Decimal = Field(ge=0, default=Decimal("0"))
    free_shipping_threshold: Optional[Decimal] = Field(ge=0, default=None)


class Store(BaseModel):
    id: str
    name: str
    slug: str
    phone: Optional[str] = None
    pix_key: Optional[str] = None
    pix_instructions: Optional[str] = None
    shipping_cost: Decimal = Decimal("0")
    free_shipping_threshold: Optional[Decimal] = None

    @property
    def shipping_config(self) -> ShippingConfig:
        return ShippingConfig(
            fixed_shipping_cost=self.shipping_cost,
            free_shipping_threshold=self.free_shipping_threshold,
        )


class Coupon(BaseModel):
    id: Optional[str] = None
    store_id: str
    code: str
    discount_percentage: Decimal = Field(gt=0, le=100)
    active: bool = True


class CouponIn(BaseModel):
    code: str
    discount_percentage: Decimal


class AppliedCoupon(BaseModel):
    code: str
    discount_percentage: Decimal


class Breakdown(BaseModel):
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    total: Decimal
    free_shipping: bool = False
    amount_to_free_shipping: Optional[Decimal] = None
    coupon_code: Optional[str] = None


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    PIX = "pix"
    CARD = "card"


class CustomerInfo(BaseModel):
    customer_name: str
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str = Field(max_length=2)
    zip_code: str

    # Runs before the field constraints so " SP " is stripped before max_length
    @field_validator("customer_name", "address_line1", "city", "state", "zip_code", mode="before")
    @classmethod
    def required_text(cls, value):
        if not isinstance(value, str):
            return value
        value = value.strip()
        if not value:
            raise ValueError("field is required")
        return value


class Order(BaseModel):
    store_id: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    zip_code: str
    total_amount: Decimal = Field(ge=0)
    discount_amount: Decimal = Field(ge=0, default=Decimal("0"))
    shipping_amount: Decimal = Field(ge=0, default=Decimal("0"))
    coupon_code: Optional[str] = None
    payment_method: PaymentMethod
    status: OrderStatus = OrderStatus.PENDING


class OrderItem(BaseModel):
    order_id: str
    product_id: str
    product_name: str
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    total_price: Decimal = Field(ge=0)
    selected_options: Optional[dict[str, str]] = None


class StoredOrder(Order):
    id: str
    created_at: Optional[datetime] = None


class OrderReceipt(BaseModel):
    order_id: str
    total_amount: Decimal
    payment_method: PaymentMethod
    pix_key: Optional[str] = None
    pix_instructions: Optional[str] = None


class Result(BaseModel, Generic[T]):
    """Value-or-message returned to the UI layer in place of exceptions."""

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "Result[T]":
        return cls(ok=False, error=error)
