from decimal import Decimal
from typing import Optional

import pytest

from cart import CartStore, MemoryCartStorage
from errors import LookupMissError
from orders import OrderStore
from schemas import Coupon, Order, OrderItem, OrderStatus, Product, ProductOption, Store, StoredOrder


class FakeCatalog:
    def __init__(self):
        self.stores: dict[str, Store] = {}
        self.products: dict[str, Product] = {}
        self.coupons: list[Coupon] = []
        self.fail_coupon_lookup = False

    async def fetch_store(self, store_id: str) -> Optional[Store]:
        return self.stores.get(store_id)

    async def fetch_product(self, product_id: str) -> Optional[Product]:
        return self.products.get(product_id)

    async def list_products(self, store_id: str, category: Optional[str] = None) -> list[Product]:
        return [p for p in self.products.values() if p.store_id == store_id and p.active and (category is None or p.category == category)]

    async def list_categories(self, store_id: str) -> list[str]:
        return sorted({p.category for p in await self.list_products(store_id) if p.category})

    async def fetch_coupon(self, store_id: str, code: str) -> Optional[Coupon]:
        if self.fail_coupon_lookup:
            raise ConnectionError("database unreachable")
        for c in self.coupons:
            if c.store_id == store_id and c.code == code and c.active:
                return c
        return None

    async def fetch_shipping_config(self, store_id: str):
        store = self.stores.get(store_id)
        if store is None:
            raise LookupMissError("Store not found.")
        return store.shipping_config


class FakeOrderStore(OrderStore):
    def __init__(self):
        self.orders: dict[str, StoredOrder] = {}
        self.items: dict[str, list[OrderItem]] = {}
        self.fail_header = False
        self.fail_items = False
        self.fail_delete = False
        self._next = 0

    async def create_order(self, header: Order) -> str:
        if self.fail_header:
            raise ConnectionError("insert failed")
        self._next += 1
        order_id = f"order-{self._next}"
        self.orders[order_id] = StoredOrder(id=order_id, **header.model_dump())
        return order_id

    async def create_order_items(self, order_id: str, items: list[OrderItem]) -> None:
        if self.fail_items:
            raise ConnectionError("insert failed")
        self.items[order_id] = list(items)

    async def delete_order(self, order_id: str) -> None:
        if self.fail_delete:
            raise ConnectionError("delete failed")
        self.orders.pop(order_id, None)
        self.items.pop(order_id, None)

    async def find_order(self, order_id: str, store_id: Optional[str] = None, email: Optional[str] = None) -> Optional[StoredOrder]:
        order = self.orders.get(order_id.strip())
        if order is None:
            return None
        if store_id is not None and order.store_id != store_id:
            return None
        if email is not None and order.customer_email.lower() != email.strip().lower():
            return None
        return order

    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        if order_id not in self.orders:
            raise LookupMissError("Order not found.")
        self.orders[order_id] = self.orders[order_id].model_copy(update={"status": status})


def make_product(product_id="p1", price="50.00", store_id="store-a", options=None, **extra) -> Product:
    return Product(
        id=product_id,
        store_id=store_id,
        name=extra.pop("name", f"Product {product_id}"),
        price=Decimal(price),
        stock=extra.pop("stock", 10),
        options=[ProductOption(name=n, values=v) for n, v in (options or {}).items()] or None,
        **extra,
    )


@pytest.fixture
def shirt() -> Product:
    return make_product("shirt", "40.00", options={"Size": ["S", "M", "L"], "Color": ["Blue", "Red"]})


@pytest.fixture
def cart() -> CartStore:
    return CartStore(MemoryCartStorage())


@pytest.fixture
def catalog() -> FakeCatalog:
    catalog = FakeCatalog()
    catalog.stores["store-a"] = Store(id="store-a", name="Loja A", slug="loja-a", pix_key="pix@loja-a.com", pix_instructions="Send the receipt on WhatsApp", shipping_cost=Decimal("15.00"))
    catalog.stores["store-b"] = Store(id="store-b", name="Loja B", slug="loja-b", shipping_cost=Decimal("10.00"), free_shipping_threshold=Decimal("100.00"))
    catalog.coupons.append(Coupon(id="c1", store_id="store-a", code="WELCOME10", discount_percentage=Decimal("10")))
    catalog.coupons.append(Coupon(id="c2", store_id="store-a", code="OLD50", discount_percentage=Decimal("50"), active=False))
    return catalog


@pytest.fixture
def order_store() -> FakeOrderStore:
    return FakeOrderStore()


@pytest.fixture
def customer() -> dict:
    return {
        "customer_name": "Maria Silva",
        "customer_email": "maria@lojaexemplo.com.br",
        "customer_phone": "(11) 99999-9999",
        "address_line1": "Rua das Flores, 10",
        "city": "São Paulo",
        "state": "SP",
        "zip_code": "01000-000",
    }
