from __future__ import annotations
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from errors import CheckoutValidationError
from money import ZERO
from schemas import CartItem, Product

logger = logging.getLogger(__name__)

CART_KEY = "storefront-cart"

_items_adapter = TypeAdapter(list[CartItem])


def options_key(options: Optional[dict[str, str]]) -> str:
    """Canonical form of a selected-options mapping; equal mappings give equal keys."""
    return json.dumps(sorted((options or {}).items()), separators=(",", ":"))


def line_key(product_id: str, options: Optional[dict[str, str]]) -> tuple[str, str]:
    return product_id, options_key(options)


class JsonFileCartStorage:
    """Durable local storage for one shopper's cart, kept under CART_KEY in a JSON file."""

    def __init__(self, path: Path | str, key: str = CART_KEY):
        self.path = Path(path)
        self.key = key

    def load_cart(self) -> Optional[list[CartItem]]:
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict) or self.key not in raw:
                return None
            return _items_adapter.validate_python(raw[self.key])
        except (OSError, ValueError, ValidationError) as e:
            # ValueError covers JSONDecodeError
            logger.warning("Discarding unreadable cart at %s: %s", self.path, e)
            return None

    def save_cart(self, items: list[CartItem]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {self.key: _items_adapter.dump_python(items, mode="json")}
        self.path.write_text(json.dumps(payload), encoding="utf-8")


class MemoryCartStorage:
    """Keeps the serialized cart in memory; used for sessions that need no disk."""

    def __init__(self, key: str = CART_KEY):
        self.key = key
        self._data: dict[str, str] = {}

    def load_cart(self) -> Optional[list[CartItem]]:
        raw = self._data.get(self.key)
        if raw is None:
            return None
        try:
            return _items_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable in-memory cart: %s", e)
            return None

    def save_cart(self, items: list[CartItem]) -> None:
        self._data[self.key] = _items_adapter.dump_json(items).decode()


def validate_options(product: Product, options: Optional[dict[str, str]]) -> None:
    declared = {opt.name: opt.values for opt in product.options or []}
    for name, value in (options or {}).items():
        if name not in declared:
            raise CheckoutValidationError(f"'{product.name}' has no option '{name}'.")
        if value not in declared[name]:
            raise CheckoutValidationError(f"'{value}' is not a valid {name} for '{product.name}'.")


def _is_whole(quantity) -> bool:
    return isinstance(quantity, int) and not isinstance(quantity, bool)


class CartStore:
    """The shopper's pending selection of product variants.

    Loaded once from storage on construction and written back after every
    mutation. ``total`` and ``count`` are derived from the current lines on
    each access and use the price held by each line's product.
    """

    def __init__(self, storage):
        self.storage = storage
        self.is_open = False
        self._items: list[CartItem] = storage.load_cart() or []

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    @property
    def total(self) -> Decimal:
        return sum((item.line_total for item in self._items), ZERO)

    @property
    def count(self) -> int:
        return sum(item.quantity for item in self._items)

    def is_empty(self) -> bool:
        return not self._items

    def _find(self, product_id: str, options: Optional[dict[str, str]]) -> Optional[CartItem]:
        key = line_key(product_id, options)
        for item in self._items:
            if line_key(item.product.id, item.selected_options) == key:
                return item
        return None

    def _persist(self) -> None:
        self.storage.save_cart(self._items)

    def add_to_cart(self, product: Product, quantity: int = 1, options: Optional[dict[str, str]] = None) -> None:
        if not _is_whole(quantity) or quantity < 1:
            raise CheckoutValidationError("Quantity must be a positive whole number.")
        validate_options(product, options)

        existing = self._find(product.id, options)
        if existing is not None:
            existing.quantity += quantity
        else:
            self._items.append(CartItem(product=product, quantity=quantity, selected_options=dict(options) if options else None))
        self.is_open = True
        self._persist()

    def remove_from_cart(self, product_id: str, options: Optional[dict[str, str]] = None) -> None:
        key = line_key(product_id, options)
        kept = [i for i in self._items if line_key(i.product.id, i.selected_options) != key]
        if len(kept) != len(self._items):
            self._items = kept
            self._persist()

    def update_quantity(self, product_id: str, quantity: int, options: Optional[dict[str, str]] = None) -> None:
        if not _is_whole(quantity):
            raise CheckoutValidationError("Quantity must be a positive whole number.")
        # Below one is ignored; removing a line takes remove_from_cart
        if quantity < 1:
            return
        item = self._find(product_id, options)
        if item is not None:
            item.quantity = quantity
            self._persist()

    def clear_cart(self) -> None:
        self._items = []
        self._persist()
