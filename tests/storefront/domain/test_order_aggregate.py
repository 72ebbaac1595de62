"""Order placement: defaults, snapshots and invariants."""

import pytest
from protean.exceptions import ValidationError
from storefront.order.events import OrderCancelled, OrderPlaced, PaymentFailed, PaymentRefunded, PaymentSucceeded
from storefront.order.order import ShippingAddress
from storefront.order.status import OrderStatus, PaymentOutcome, PaymentStatus


class TestOrderPlacement:
    def test_new_order_is_pending(self, make_order):
        order = make_order()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value

    def test_payment_amount_equals_total(self, make_order):
        order = make_order()
        assert order.payment_amount == 71.0

    def test_defaults(self, make_order):
        order = make_order()
        assert order.payment_method == "card"
        assert order.currency == "usd"
        assert order.shipping_method == "standard"
        assert order.created_at is not None
        assert order.created_at == order.updated_at

    def test_billing_defaults_to_shipping(self, make_order, shipping_address):
        order = make_order()
        assert order.billing_address.full_name == shipping_address["full_name"]
        assert order.billing_address.postal_code == shipping_address["postal_code"]

    def test_explicit_billing_address_is_kept(self, make_order):
        order = make_order(billing_address={"full_name": "Charles Babbage", "city": "London"})
        assert order.billing_address.full_name == "Charles Babbage"
        assert order.shipping_address.full_name == "Ada Lovelace"

    def test_items_are_snapshotted(self, make_order):
        order = make_order()
        assert len(order.items) == 2
        shirt = next(i for i in order.items if i.product_id == "prod-001")
        assert (shirt.quantity, shirt.price, shirt.size, shirt.color) == (2, 25.0, "M", "white")

    def test_raises_order_placed(self, make_order):
        order = make_order()
        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.order_number == order.order_number
        assert event.total == 71.0

    def test_accepts_other_payment_methods(self, make_order):
        order = make_order(payment_method="apple-pay")
        assert order.payment_method == "apple-pay"

    def test_rejects_unknown_payment_method(self, make_order):
        with pytest.raises(ValidationError) as exc_info:
            make_order(payment_method="cheque")
        assert "payment_method" in exc_info.value.messages


class TestOrderInvariants:
    def test_total_must_equal_components(self, make_order):
        with pytest.raises(ValidationError) as exc_info:
            make_order(total=80.0)
        assert "total" in exc_info.value.messages

    def test_cent_rounding_is_tolerated(self, make_order):
        order = make_order(subtotal=10.1, tax=0.2, shipping_cost=0.0, total=10.3)
        assert order.total == 10.3

    def test_items_are_required(self, make_order):
        with pytest.raises(ValidationError) as exc_info:
            make_order(items=[])
        assert "items" in exc_info.value.messages

    def test_item_quantity_must_be_positive(self, make_order, order_lines):
        lines = [dict(order_lines[0], quantity=0)]
        with pytest.raises(ValidationError):
            make_order(items=lines, subtotal=0.0, tax=0.0, shipping_cost=0.0, total=0.0)

    def test_shipping_address_requires_every_field(self, shipping_address):
        incomplete = {k: v for k, v in shipping_address.items() if k != "postal_code"}
        with pytest.raises(ValidationError) as exc_info:
            ShippingAddress(**incomplete)
        assert "postal_code" in exc_info.value.messages


class TestPaymentOutcomes:
    def test_success_moves_to_processing(self, make_order):
        order = make_order()
        plan = order.apply_payment_outcome(PaymentOutcome.SUCCEEDED, payment_reference="pi_001")

        assert plan.applies
        assert order.status == OrderStatus.PROCESSING.value
        assert order.payment_status == PaymentStatus.PAID.value
        assert isinstance(order._events[-1], PaymentSucceeded)

    def test_failure_cancels_order(self, make_order):
        order = make_order()
        order.apply_payment_outcome(PaymentOutcome.FAILED)

        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.FAILED.value
        assert order.cancelled_reason == "Payment failed"
        assert [type(e) for e in order._events[-2:]] == [PaymentFailed, OrderCancelled]
        assert order._events[-1].cancelled_by == "payment"

    def test_refund_cancels_processing_order(self, make_order):
        order = make_order()
        order.apply_payment_outcome(PaymentOutcome.SUCCEEDED)
        order.apply_payment_outcome(PaymentOutcome.REFUNDED)

        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.REFUNDED.value
        assert isinstance(order._events[-2], PaymentRefunded)

    def test_refund_of_delivered_order_keeps_delivered(self, make_order):
        order = make_order()
        order.apply_payment_outcome(PaymentOutcome.SUCCEEDED)
        order.mark_shipped("UPS", "1Z")
        order.mark_delivered()

        plan = order.apply_payment_outcome(PaymentOutcome.REFUNDED)

        assert plan.applies and not plan.moves_order
        assert order.status == OrderStatus.DELIVERED.value
        assert order.payment_status == PaymentStatus.REFUNDED.value

    def test_replay_raises_no_events(self, make_order):
        order = make_order()
        order.apply_payment_outcome(PaymentOutcome.SUCCEEDED)
        events_before = len(order._events)
        updated_before = order.updated_at

        plan = order.apply_payment_outcome(PaymentOutcome.SUCCEEDED)

        assert not plan.applies
        assert len(order._events) == events_before
        assert order.updated_at == updated_before

    def test_order_fields_never_change_after_payment(self, make_order):
        order = make_order()
        snapshot = (order.order_number, order.total, order.subtotal, len(order.items))
        order.apply_payment_outcome(PaymentOutcome.SUCCEEDED)
        assert (order.order_number, order.total, order.subtotal, len(order.items)) == snapshot


def test_payment_outcome_accepts_plain_strings(make_order):
    order = make_order()
    order.apply_payment_outcome("succeeded")
    assert order.status == "processing"
