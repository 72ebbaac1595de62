"""Order aggregate: an immutable purchase snapshot with a small mutable status core.

Items, addresses and amounts are fixed when the order is placed. Afterwards
only the order status, payment status, shipment details, cancellation details
and ``updated_at`` change, always through the transition table in
``storefront.order.status``.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.domain import storefront
from storefront.errors import ForbiddenTransition
from storefront.order.events import (
    OrderCancelled,
    OrderDelivered,
    OrderPlaced,
    OrderShipped,
    PaymentFailed,
    PaymentRefunded,
    PaymentSucceeded,
)
from storefront.order.status import (
    OrderStatus,
    PaymentOutcome,
    PaymentStatus,
    TransitionPlan,
    can_transition,
    is_cancellable,
    plan_payment_outcome,
)

DEFAULT_CANCEL_REASON = "Cancelled by user"

_PAYMENT_CANCEL_REASONS = {
    PaymentOutcome.FAILED: "Payment failed",
    PaymentOutcome.REFUNDED: "Payment refunded",
}

# Amounts are floats; anything within half a cent is considered equal
_CENT_TOLERANCE = 0.005


class PaymentMethod(Enum):
    CARD = "card"
    PAYPAL = "paypal"
    APPLE_PAY = "apple-pay"


def amounts_match(left: float, right: float) -> bool:
    return abs(round((left or 0.0) - (right or 0.0), 6)) <= _CENT_TOLERANCE


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Where and to whom the order ships. Every field is required."""

    full_name = String(required=True, max_length=255)
    email = String(required=True, max_length=255)
    phone = String(required=True, max_length=50)
    address = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@storefront.value_object(part_of="Order")
class BillingAddress:
    """Billing contact. Defaults to the shipping address when omitted at checkout."""

    full_name = String(max_length=255)
    email = String(max_length=255)
    phone = String(max_length=50)
    address = String(max_length=255)
    city = String(max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A line snapshot: the product as it was priced when the order was placed."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    image = String(max_length=1024)
    quantity = Integer(required=True, min_value=1)
    size = String(max_length=50, default="")
    color = String(max_length=50, default="")
    price = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=32, unique=True)
    owner_id = Identifier(required=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    billing_address = ValueObject(BillingAddress)

    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CARD.value)
    payment_intent_id = String(max_length=255)
    checkout_session_id = String(max_length=255)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_amount = Float(default=0.0)
    currency = String(max_length=3, default="usd")

    shipping_method = String(max_length=50, default="standard")
    shipping_cost = Float(default=0.0, min_value=0.0)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)

    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    subtotal = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    notes = Text()

    cancelled_at = DateTime()
    cancelled_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def order_must_have_items(self):
        if not self.items:
            raise ValidationError({"items": ["Order must contain at least one item"]})

    @invariant.post
    def total_must_equal_its_components(self):
        expected = (self.subtotal or 0.0) + (self.tax or 0.0) + (self.shipping_cost or 0.0)
        if not amounts_match(self.total, expected):
            raise ValidationError(
                {"total": [f"Total {self.total} does not equal subtotal + tax + shipping ({expected:.2f})"]}
            )

    @invariant.post
    def payment_amount_must_equal_total(self):
        if not amounts_match(self.payment_amount, self.total):
            raise ValidationError({"payment_amount": ["Payment amount must equal the order total"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        owner_id,
        items,
        shipping_address,
        total,
        billing_address=None,
        subtotal=0.0,
        tax=0.0,
        shipping_cost=0.0,
        payment_method=None,
        payment_intent_id=None,
        checkout_session_id=None,
        currency=None,
        shipping_method=None,
        notes=None,
    ):
        """Create a pending order. ``items`` are dicts shaped like ``OrderItem``."""
        now = datetime.now(UTC)
        billing = billing_address or shipping_address.to_dict()

        order = cls(
            order_number=order_number,
            owner_id=owner_id,
            items=[OrderItem(**item) for item in items],
            shipping_address=shipping_address,
            billing_address=BillingAddress(**billing),
            payment_method=payment_method or PaymentMethod.CARD.value,
            payment_intent_id=payment_intent_id,
            checkout_session_id=checkout_session_id,
            payment_status=PaymentStatus.PENDING.value,
            payment_amount=total,
            currency=(currency or "usd").lower(),
            shipping_method=shipping_method or "standard",
            shipping_cost=shipping_cost,
            status=OrderStatus.PENDING.value,
            subtotal=subtotal,
            tax=tax,
            total=total,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                owner_id=str(owner_id),
                items=json.dumps(items),
                total=total,
                currency=order.currency,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # User-driven transitions
    # -------------------------------------------------------------------
    def cancel(self, reason=None):
        """Cancel on behalf of the owner. Only pending and processing orders qualify."""
        current = OrderStatus(self.status)
        if not is_cancellable(current):
            raise ForbiddenTransition(
                f"Cannot cancel order with status: {current.value}",
                current_status=current.value,
                target_status=OrderStatus.CANCELLED.value,
            )

        now = datetime.now(UTC)
        self.cancelled_at = now
        self.cancelled_reason = reason or DEFAULT_CANCEL_REASON
        self.status = OrderStatus.CANCELLED.value
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=self.cancelled_reason,
                cancelled_by="user",
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Operator-driven transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: OrderStatus):
        current = OrderStatus(self.status)
        if not can_transition(current, target):
            raise ForbiddenTransition(
                f"Cannot transition from {current.value} to {target.value}",
                current_status=current.value,
                target_status=target.value,
            )

    def mark_shipped(self, carrier=None, tracking_number=None):
        self._assert_can_transition(OrderStatus.SHIPPED)

        now = datetime.now(UTC)
        self.carrier = carrier
        self.tracking_number = tracking_number
        self.status = OrderStatus.SHIPPED.value
        self.updated_at = now

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                carrier=carrier,
                tracking_number=tracking_number,
                shipped_at=now,
            )
        )

    def mark_delivered(self):
        self._assert_can_transition(OrderStatus.DELIVERED)

        now = datetime.now(UTC)
        self.status = OrderStatus.DELIVERED.value
        self.updated_at = now

        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))

    # -------------------------------------------------------------------
    # Event-driven transitions
    # -------------------------------------------------------------------
    def apply_payment_outcome(self, outcome, payment_reference=None) -> TransitionPlan:
        """Apply a payment processor outcome. Returns the plan that was applied.

        Outcomes that the transition tables reject leave the order untouched and
        come back as a plan whose ``applies`` is False.
        """
        outcome = PaymentOutcome(outcome)
        previous_status = OrderStatus(self.status)
        plan = plan_payment_outcome(previous_status, PaymentStatus(self.payment_status), outcome)
        if not plan.applies:
            return plan

        now = datetime.now(UTC)
        self.payment_status = plan.payment_status.value
        if plan.moves_order:
            if plan.order_status == OrderStatus.CANCELLED:
                self.cancelled_at = now
                self.cancelled_reason = _PAYMENT_CANCEL_REASONS[outcome]
            self.status = plan.order_status.value
        self.updated_at = now

        if outcome == PaymentOutcome.SUCCEEDED:
            event = PaymentSucceeded(
                order_id=str(self.id),
                payment_reference=payment_reference,
                amount=self.payment_amount,
                order_status=self.status,
                occurred_at=now,
            )
        elif outcome == PaymentOutcome.FAILED:
            event = PaymentFailed(
                order_id=str(self.id),
                payment_reference=payment_reference,
                order_status=self.status,
                occurred_at=now,
            )
        else:
            event = PaymentRefunded(
                order_id=str(self.id),
                payment_reference=payment_reference,
                amount=self.payment_amount,
                order_status=self.status,
                occurred_at=now,
            )
        self.raise_(event)

        if plan.order_status == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    previous_status=previous_status.value,
                    reason=self.cancelled_reason,
                    cancelled_by="payment",
                    cancelled_at=now,
                )
            )

        return plan
