"""Domain events for the Order aggregate.

Events are raised by the aggregate and dispatched when the unit of work
commits. They feed the order timeline projection.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A new order was created from a checkout submission."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    owner_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line snapshots
    total = Float(required=True)
    currency = String(default="usd")
    payment_method = String()
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentSucceeded:
    __version__ = "v1"

    order_id = Identifier(required=True)
    payment_reference = String()
    amount = Float()
    order_status = String(required=True)
    occurred_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentFailed:
    __version__ = "v1"

    order_id = Identifier(required=True)
    payment_reference = String()
    order_status = String(required=True)
    occurred_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentRefunded:
    __version__ = "v1"

    order_id = Identifier(required=True)
    payment_reference = String()
    amount = Float()
    order_status = String(required=True)
    occurred_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    """The order moved to cancelled, by its owner or by a payment outcome."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String()
    cancelled_by = String(required=True)  # "user" or "payment"
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderShipped:
    __version__ = "v1"

    order_id = Identifier(required=True)
    carrier = String()
    tracking_number = String()
    shipped_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderDelivered:
    __version__ = "v1"

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)
