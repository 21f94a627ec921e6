from __future__ import annotations
import re
from collections import OrderedDict
from pathlib import Path
from typing import Optional

from cart import CartStore, JsonFileCartStorage, MemoryCartStorage
from checkout import Checkout
from errors import CheckoutValidationError
from orders import OrderStore

_SESSION_ID = re.compile(r"^[A-Za-z0-9_-]{8,64}$")

DEFAULT_MAX_SESSIONS = 1000


class SessionRegistry:
    """Owns every shopper's cart and checkout; created once by the app.

    With ``storage_dir`` set each session's cart goes to its own JSON file
    and the in-memory map is only a cache: an evicted cart is reloaded from
    its file on the next request. Without it carts live in memory and an
    evicted cart starts over empty. Both maps keep at most ``max_sessions``
    entries, dropping the least recently used.
    """

    def __init__(self, catalog, orders: Optional[OrderStore] = None, storage_dir: Optional[str] = None, max_sessions: int = DEFAULT_MAX_SESSIONS):
        self.catalog = catalog
        self.orders = orders or OrderStore()
        self.storage_dir = Path(storage_dir) if storage_dir else None
        self.max_sessions = max_sessions
        self._carts: OrderedDict[str, CartStore] = OrderedDict()
        self._checkouts: OrderedDict[tuple[str, str], Checkout] = OrderedDict()

    def __len__(self) -> int:
        return len(self._carts)

    def _touch(self, cache: OrderedDict, key) -> None:
        cache.move_to_end(key)
        while len(cache) > self.max_sessions:
            cache.popitem(last=False)

    def cart(self, session_id: str) -> CartStore:
        if not _SESSION_ID.match(session_id or ""):
            raise CheckoutValidationError("Invalid session id.")
        if session_id not in self._carts:
            if self.storage_dir is not None:
                storage = JsonFileCartStorage(self.storage_dir / f"{session_id}.json")
            else:
                storage = MemoryCartStorage()
            self._carts[session_id] = CartStore(storage)
        cart = self._carts[session_id]
        self._touch(self._carts, session_id)
        return cart

    def checkout(self, session_id: str, store_id: str) -> Checkout:
        cart = self.cart(session_id)
        key = (session_id, store_id)
        if key not in self._checkouts:
            self._checkouts[key] = Checkout(store_id, cart, self.catalog, self.orders)
        checkout = self._checkouts[key]
        # The cart may have been evicted and reloaded since this checkout was made
        checkout.cart = cart
        self._touch(self._checkouts, key)
        return checkout
