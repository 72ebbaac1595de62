"""Order Store: persistence boundary for Order aggregates.

Every write goes through here so that:

* inserts rely on the ``order_number`` uniqueness constraint, and a collision
  surfaces as ``DuplicateOrderNumber`` for the caller to re-allocate;
* updates are read-modify-write sequences held under the order's own lock, so
  concurrent webhook deliveries and user requests see each other's writes;
* storage outages surface as ``ServiceUnavailable`` instead of leaking
  driver-specific exceptions.
"""

from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from protean import UnitOfWork
from protean.domain import Domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from storefront.errors import DuplicateOrderNumber, OrderNotFound, ServiceUnavailable
from storefront.locks import RecordLocks
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


def order_lock_key(order_id: str) -> str:
    return f"order:{order_id}"


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate connectivity failures into ``ServiceUnavailable``."""
    try:
        yield
    except (ConnectionError, OperationalError) as exc:
        logger.error("storage_unavailable", operation=operation, error=str(exc))
        raise ServiceUnavailable() from exc


class OrderStore:
    def __init__(self, domain: Domain, locks: RecordLocks):
        self.domain = domain
        self.locks = locks

    @property
    def repository(self):
        return self.domain.repository_for(Order)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def find(self, order_id: str) -> Order | None:
        with storage_errors("find"):
            try:
                return self.repository.get(order_id)
            except ObjectNotFoundError:
                return None

    def get(self, order_id: str, owner_id: str | None = None) -> Order:
        """Load an order, optionally scoped to its owner. Someone else's order is reported as missing."""
        order = self.find(order_id)
        if order is None or (owner_id is not None and str(order.owner_id) != str(owner_id)):
            raise OrderNotFound(order_id)
        return order

    def get_by_number(self, order_number: str, owner_id: str | None = None) -> Order:
        order = self.find_by_number(order_number)
        if order is None or (owner_id is not None and str(order.owner_id) != str(owner_id)):
            raise OrderNotFound(order_number)
        return order

    def find_by_number(self, order_number: str) -> Order | None:
        with storage_errors("find_by_number"):
            return self.repository.find_by_number(order_number)

    def find_by_payment_intent(self, payment_intent_id: str) -> Order | None:
        with storage_errors("find_by_payment_intent"):
            return self.repository.find_by_payment_intent(payment_intent_id)

    def find_by_checkout_session(self, checkout_session_id: str) -> Order | None:
        with storage_errors("find_by_checkout_session"):
            return self.repository.find_by_checkout_session(checkout_session_id)

    def number_exists(self, order_number: str) -> bool:
        with storage_errors("number_exists"):
            return self.repository.order_number_exists(order_number)

    def list_for_owner(self, owner_id: str, status: str | None = None, page: int = 1, limit: int = 50):
        with storage_errors("list_for_owner"):
            return self.repository.list_for_owner(owner_id, status=status, page=page, limit=limit)

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def insert(self, order: Order, also: Iterable[Any] = ()) -> Order:
        """Persist a new order, plus any other aggregates, in a single unit of work.

        Raises ``DuplicateOrderNumber`` when the number is already taken.
        """
        with storage_errors("insert"):
            try:
                with UnitOfWork():
                    self.repository.add(order)
                    for aggregate in also:
                        self.domain.repository_for(type(aggregate)).add(aggregate)
            except IntegrityError as exc:
                raise DuplicateOrderNumber(order.order_number) from exc
            except ValidationError as exc:
                if "order_number" in exc.messages:
                    raise DuplicateOrderNumber(order.order_number) from exc
                raise

        logger.info("order_inserted", order_id=str(order.id), order_number=order.order_number)
        return order

    def update(self, order_id: str, mutate: Callable[[Order], Any], owner_id: str | None = None) -> tuple[Order, Any]:
        """Run ``mutate`` against the freshest copy of the order while holding its lock.

        The order is written back only when ``mutate`` raised domain events, so a
        rejected or no-op transition costs no write. Returns ``(order, result)``.
        """
        with self.locks.hold(order_lock_key(order_id)):
            order = self.get(order_id, owner_id=owner_id)
            result = mutate(order)
            if order._events:
                with storage_errors("update"):
                    self.repository.add(order)
            return order, result
