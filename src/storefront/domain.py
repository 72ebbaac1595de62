"""Storefront bounded context: Orders, Carts and Payment reconciliation.

Handles order creation from a cart snapshot, order number allocation, the
order status state machine, and reconciliation of asynchronous payment
processor notifications against locally stored orders.
"""

import structlog
from protean.domain import Domain

from storefront.utils.logging import configure_logging

configure_logging()

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
