"""Timeline projection built from order and payment events."""

from storefront.payment.verifier.fake_verifier import TEST_SIGNATURE
from storefront.projections.order_timeline import timeline_for


def _types(domain, order):
    return [entry.event_type for entry in timeline_for(domain, str(order.id))]


def test_placement_is_recorded(services, place_order, _storefront_domain):
    order = place_order()

    entries = timeline_for(_storefront_domain, str(order.id))

    assert [e.event_type for e in entries] == ["OrderPlaced"]
    assert order.order_number in entries[0].description


def test_full_happy_path(services, place_order, payment_event, _storefront_domain):
    order = place_order()
    services.payments.handle(payment_event("payment_intent.succeeded", "pi_001"), TEST_SIGNATURE)
    services.lifecycle.ship(str(order.id), "UPS", "1Z999")
    services.lifecycle.deliver(str(order.id))

    assert _types(_storefront_domain, order) == [
        "OrderPlaced",
        "PaymentSucceeded",
        "OrderShipped",
        "OrderDelivered",
    ]


def test_payment_failure_records_payment_and_cancellation(services, place_order, payment_event, _storefront_domain):
    order = place_order()
    services.payments.handle(payment_event("payment_intent.payment_failed", "pi_001"), TEST_SIGNATURE)

    entries = timeline_for(_storefront_domain, str(order.id))

    assert [e.event_type for e in entries] == ["OrderPlaced", "PaymentFailed", "OrderCancelled"]
    assert "Cancelled by payment from pending" in entries[-1].description


def test_user_cancellation(services, place_order, _storefront_domain):
    order = place_order()
    services.lifecycle.cancel(str(order.id), "user-001", "Changed my mind")

    entries = timeline_for(_storefront_domain, str(order.id))

    assert entries[-1].event_type == "OrderCancelled"
    assert entries[-1].description.endswith("Changed my mind")


def test_ignored_outcomes_add_nothing(services, place_order, payment_event, _storefront_domain):
    order = place_order()
    services.payments.handle(payment_event("payment_intent.succeeded", "pi_001", "evt_1"), TEST_SIGNATURE)
    services.payments.handle(payment_event("payment_intent.succeeded", "pi_001", "evt_2"), TEST_SIGNATURE)

    assert _types(_storefront_domain, order) == ["OrderPlaced", "PaymentSucceeded"]


def test_timelines_are_per_order(services, place_order, _storefront_domain):
    first = place_order()
    second = place_order(payment={"payment_intent_id": "pi_002"})

    assert _types(_storefront_domain, first) == ["OrderPlaced"]
    assert _types(_storefront_domain, second) == ["OrderPlaced"]
