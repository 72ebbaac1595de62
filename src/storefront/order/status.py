"""Order status state machine.

One transition table serves user-driven (cancel), operator-driven (ship,
deliver) and event-driven (payment notification) changes.

Order:
    pending → processing | cancelled
    processing → shipped | cancelled
    shipped → delivered
    delivered, cancelled: terminal

Payment:
    pending → paid | failed | refunded
    paid → refunded
    failed → paid
    refunded: terminal

A payment outcome first moves the payment status. Only when that move is
allowed is the paired order move attempted, and the order move is applied
only when the order table allows it as well. Anything else is a no-op.
"""

from dataclasses import dataclass
from enum import Enum


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentOutcome(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# A refund may be delivered before the success it reverses, so pending can
# move straight to refunded. The later success is then a no-op.
PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.REFUNDED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: {PaymentStatus.PAID},  # Retried payment
    PaymentStatus.REFUNDED: set(),  # Terminal
}

# States from which a user may cancel
CANCELLABLE_STATES = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING})

OUTCOME_TARGETS = {
    PaymentOutcome.SUCCEEDED: (PaymentStatus.PAID, OrderStatus.PROCESSING),
    PaymentOutcome.FAILED: (PaymentStatus.FAILED, OrderStatus.CANCELLED),
    PaymentOutcome.REFUNDED: (PaymentStatus.REFUNDED, OrderStatus.CANCELLED),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[OrderStatus(current)]


def can_transition_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_TRANSITIONS[PaymentStatus(current)]


def is_cancellable(status: OrderStatus) -> bool:
    return OrderStatus(status) in CANCELLABLE_STATES


@dataclass(frozen=True)
class TransitionPlan:
    """What a payment outcome does to an order in a given state.

    ``payment_status`` is None when the outcome is a no-op. ``order_status`` is
    None when the payment status moves but the order status stays put (a refund
    on a shipped order, a success arriving after the order was cancelled).
    """

    outcome: PaymentOutcome
    payment_status: PaymentStatus | None = None
    order_status: OrderStatus | None = None

    @property
    def applies(self) -> bool:
        return self.payment_status is not None

    @property
    def moves_order(self) -> bool:
        return self.order_status is not None


def plan_payment_outcome(
    order_status: OrderStatus, payment_status: PaymentStatus, outcome: PaymentOutcome
) -> TransitionPlan:
    outcome = PaymentOutcome(outcome)
    payment_target, order_target = OUTCOME_TARGETS[outcome]

    if not can_transition_payment(PaymentStatus(payment_status), payment_target):
        return TransitionPlan(outcome=outcome)

    if not can_transition(OrderStatus(order_status), order_target):
        return TransitionPlan(outcome=outcome, payment_status=payment_target)

    return TransitionPlan(outcome=outcome, payment_status=payment_target, order_status=order_target)
