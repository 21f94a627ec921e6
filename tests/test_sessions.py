import pytest

from conftest import make_product
from errors import CheckoutValidationError
from sessions import SessionRegistry


def test_least_recently_used_sessions_are_dropped(catalog, order_store):
    registry = SessionRegistry(catalog, order_store, max_sessions=2)

    first = registry.cart("shopper-0001")
    registry.cart("shopper-0002")
    assert registry.cart("shopper-0001") is first
    registry.cart("shopper-0003")

    assert len(registry) == 2
    assert registry.cart("shopper-0001") is first


def test_evicted_memory_cart_starts_empty(catalog, order_store):
    registry = SessionRegistry(catalog, order_store, max_sessions=1)
    registry.cart("shopper-0001").add_to_cart(make_product("p1", "50.00"))

    registry.cart("shopper-0002")

    assert registry.cart("shopper-0001").is_empty()


def test_evicted_file_cart_is_reloaded(tmp_path, catalog, order_store):
    registry = SessionRegistry(catalog, order_store, storage_dir=str(tmp_path), max_sessions=1)
    registry.cart("shopper-0001").add_to_cart(make_product("p1", "50.00"), 2)
    registry.checkout("shopper-0001", "store-a")

    registry.cart("shopper-0002")
    checkout = registry.checkout("shopper-0001", "store-a")

    assert len(registry) == 1
    assert registry.cart("shopper-0001").count == 2
    assert checkout.cart is registry.cart("shopper-0001")


async def test_checkout_follows_the_reloaded_cart(tmp_path, catalog, order_store, customer):
    registry = SessionRegistry(catalog, order_store, storage_dir=str(tmp_path), max_sessions=1)
    registry.cart("shopper-0001").add_to_cart(make_product("p1", "50.00"))
    registry.checkout("shopper-0001", "store-a")

    registry.cart("shopper-0002")
    result = await registry.checkout("shopper-0001", "store-a").submit_order(customer, "card")

    assert result.ok
    assert registry.cart("shopper-0001").is_empty()


@pytest.mark.parametrize("session_id", ["", "short", "../../etc/passwd", "x" * 65])
def test_session_ids_are_validated(catalog, order_store, session_id):
    registry = SessionRegistry(catalog, order_store)

    with pytest.raises(CheckoutValidationError):
        registry.cart(session_id)
