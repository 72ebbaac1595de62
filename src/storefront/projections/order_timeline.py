"""Order timeline: append-only audit trail of order events."""

import uuid

from protean.core.projector import on
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.events import (
    OrderCancelled,
    OrderDelivered,
    OrderPlaced,
    OrderShipped,
    PaymentFailed,
    PaymentRefunded,
    PaymentSucceeded,
)
from storefront.order.order import Order


@storefront.projection
class OrderTimeline:
    entry_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    event_type = String(required=True)
    description = String(required=True)
    occurred_at = DateTime(required=True)


def _add_entry(order_id, event_type, description, occurred_at):
    current_domain.repository_for(OrderTimeline).add(
        OrderTimeline(
            entry_id=str(uuid.uuid4()),
            order_id=order_id,
            event_type=event_type,
            description=description,
            occurred_at=occurred_at,
        )
    )


def timeline_for(domain, order_id: str) -> list[OrderTimeline]:
    """Entries for one order, oldest first."""
    repo = domain.repository_for(OrderTimeline)
    return repo._dao.query.filter(order_id=order_id).order_by("occurred_at").all().items


@storefront.projector(projector_for=OrderTimeline, aggregates=[Order])
class OrderTimelineProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        _add_entry(event.order_id, "OrderPlaced", f"Order {event.order_number} was placed", event.placed_at)

    @on(PaymentSucceeded)
    def on_payment_succeeded(self, event):
        _add_entry(event.order_id, "PaymentSucceeded", f"Payment of {event.amount:.2f} succeeded", event.occurred_at)

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        _add_entry(event.order_id, "PaymentFailed", "Payment failed", event.occurred_at)

    @on(PaymentRefunded)
    def on_payment_refunded(self, event):
        _add_entry(event.order_id, "PaymentRefunded", f"Payment of {event.amount:.2f} refunded", event.occurred_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        _add_entry(
            event.order_id,
            "OrderCancelled",
            f"Cancelled by {event.cancelled_by} from {event.previous_status}: {event.reason}",
            event.cancelled_at,
        )

    @on(OrderShipped)
    def on_order_shipped(self, event):
        _add_entry(
            event.order_id,
            "OrderShipped",
            f"Shipped via {event.carrier} (tracking: {event.tracking_number})",
            event.shipped_at,
        )

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        _add_entry(event.order_id, "OrderDelivered", "Order was delivered", event.delivered_at)
