"""User- and operator-driven order transitions, plus owner-scoped queries.

All transitions run through ``OrderStore.update`` so they serialise with
payment notifications for the same order.
"""

import math

import structlog

from storefront.errors import ForbiddenTransition
from storefront.order.order import Order
from storefront.order.status import OrderStatus
from storefront.order.store import OrderStore

logger = structlog.get_logger(__name__)


class OrderLifecycleService:
    def __init__(self, store: OrderStore, page_limit: int = 50, max_page_limit: int = 100):
        self.store = store
        self.page_limit = page_limit
        self.max_page_limit = max_page_limit

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get(self, order_id: str, owner_id: str) -> Order:
        return self.store.get(order_id, owner_id=owner_id)

    def get_by_number(self, order_number: str, owner_id: str) -> Order:
        return self.store.get_by_number(order_number, owner_id=owner_id)

    def list(self, owner_id: str, status: str | None = None, page: int | None = None, limit: int | None = None):
        """Newest-first page of the owner's orders with pagination metadata."""
        page = max(page or 1, 1)
        limit = min(max(limit or self.page_limit, 1), self.max_page_limit)

        orders, total = self.store.list_for_owner(owner_id, status=status, page=page, limit=limit)
        pagination = {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if total else 0,
        }
        return orders, pagination

    # -------------------------------------------------------------------
    # User-driven
    # -------------------------------------------------------------------
    def cancel(self, order_id: str, owner_id: str, reason: str | None = None) -> Order:
        order, _ = self.store.update(order_id, lambda o: o.cancel(reason), owner_id=owner_id)
        logger.info("order_cancelled", order_id=order_id, owner_id=owner_id, reason=order.cancelled_reason)
        return order

    def request_status(self, order_id: str, owner_id: str, status: str, reason: str | None = None) -> Order:
        """Owner-requested status change. Cancellation is the only change an owner may request."""
        if status != OrderStatus.CANCELLED.value:
            raise ForbiddenTransition("You can only cancel orders", target_status=status)
        return self.cancel(order_id, owner_id, reason)

    # -------------------------------------------------------------------
    # Operator-driven
    # -------------------------------------------------------------------
    def ship(self, order_id: str, carrier: str | None = None, tracking_number: str | None = None) -> Order:
        order, _ = self.store.update(order_id, lambda o: o.mark_shipped(carrier, tracking_number))
        logger.info("order_shipped", order_id=order_id, carrier=carrier, tracking_number=tracking_number)
        return order

    def deliver(self, order_id: str) -> Order:
        order, _ = self.store.update(order_id, lambda o: o.mark_delivered())
        logger.info("order_delivered", order_id=order_id)
        return order
