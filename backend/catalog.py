from __future__ import annotations
import logging
from typing import Optional

from database import find_document, get_documents, object_id
from errors import LookupMissError
from schemas import Coupon, Product, ShippingConfig, Store

logger = logging.getLogger(__name__)


class Catalog:
    """Read-only access to one tenant's products, coupons and store settings."""

    async def fetch_store(self, store_id: str) -> Optional[Store]:
        oid = object_id(store_id)
        if oid is None:
            return None
        doc = await find_document("store", {"_id": oid})
        return Store(**doc) if doc else None

    async def fetch_product(self, product_id: str) -> Optional[Product]:
        oid = object_id(product_id)
        if oid is None:
            return None
        doc = await find_document("product", {"_id": oid})
        return Product(**doc) if doc else None

    async def list_products(self, store_id: str, category: Optional[str] = None) -> list[Product]:
        filter_dict = {"store_id": store_id, "active": True}
        if category:
            filter_dict["category"] = category
        docs = await get_documents("product", filter_dict, limit=200)
        return [Product(**d) for d in docs]

    async def list_categories(self, store_id: str) -> list[str]:
        products = await self.list_products(store_id)
        return sorted({p.category for p in products if p.category})

    async def fetch_coupon(self, store_id: str, code: str) -> Optional[Coupon]:
        # Exact match on tenant, code and active flag; no partial hits
        doc = await find_document("coupon", {"store_id": store_id, "code": code, "active": True})
        return Coupon(**doc) if doc else None

    async def fetch_shipping_config(self, store_id: str) -> ShippingConfig:
        store = await self.fetch_store(store_id)
        if store is None:
            logger.warning("Shipping config requested for unknown store %s", store_id)
            raise LookupMissError("Store not found.")
        return store.shipping_config
