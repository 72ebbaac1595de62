"""Cart Snapshot Service: owner-scoped cart reads and locked mutations.

Every mutation is a read-modify-write under the owner's cart lock. Reads never
create anything: a caller without a cart gets a fresh, unpersisted empty one.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from protean.domain import Domain

from storefront.cart.cart import Cart
from storefront.errors import CartNotFound
from storefront.locks import RecordLocks
from storefront.order.store import storage_errors

logger = structlog.get_logger(__name__)


def cart_lock_key(owner_id: str) -> str:
    return f"cart:{owner_id}"


class CartService:
    def __init__(self, domain: Domain, locks: RecordLocks):
        self.domain = domain
        self.locks = locks

    @property
    def repository(self):
        return self.domain.repository_for(Cart)

    def find(self, owner_id: str) -> Cart | None:
        with storage_errors("find_cart"):
            return self.repository.find_by_owner(owner_id)

    def get(self, owner_id: str) -> Cart:
        return self.find(owner_id) or Cart.create(owner_id)

    @contextmanager
    def locked(self, owner_id: str) -> Iterator[None]:
        """Hold the owner's cart lock, e.g. while an order consumes the cart."""
        with self.locks.hold(cart_lock_key(owner_id)):
            yield

    def _mutate(self, owner_id: str, change: Callable[[Cart], Any], create: bool = True) -> tuple[Cart, Any]:
        with self.locked(owner_id):
            cart = self.find(owner_id)
            if cart is None:
                if not create:
                    raise CartNotFound()
                cart = Cart.create(owner_id)
            result = change(cart)
            with storage_errors("save_cart"):
                self.repository.add(cart)
            return cart, result

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------
    def add_item(self, owner_id, product_id, name, image, price, quantity=1, size=None, color=None) -> Cart:
        cart, _ = self._mutate(
            owner_id, lambda c: c.add_item(product_id, name, image, price, quantity, size=size, color=color)
        )
        return cart

    def update_item(self, owner_id, product_id, quantity, size=None, color=None) -> Cart:
        cart, _ = self._mutate(
            owner_id, lambda c: c.update_quantity(product_id, quantity, size=size, color=color), create=False
        )
        return cart

    def remove_item(self, owner_id, product_id, size=None, color=None) -> Cart:
        cart, _ = self._mutate(owner_id, lambda c: c.remove_item(product_id, size=size, color=color), create=False)
        return cart

    def clear(self, owner_id) -> Cart:
        cart, _ = self._mutate(owner_id, lambda c: c.clear(), create=False)
        return cart

    def merge(self, owner_id, guest_lines, merge_token=None) -> Cart:
        cart, merged = self._mutate(owner_id, lambda c: c.merge(guest_lines, merge_token=merge_token))
        logger.info("guest_cart_merged", owner_id=owner_id, lines=merged, merge_token=merge_token)
        return cart

    def cleared_for_checkout(self, owner_id) -> Cart | None:
        """The owner's persisted cart with its lines removed, ready to be saved with a new order.

        Callers must hold ``locked(owner_id)``. Returns None when the owner has no cart.
        """
        cart = self.find(owner_id)
        if cart is None:
            return None
        cart.clear()
        return cart
