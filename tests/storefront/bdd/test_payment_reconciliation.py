"""BDD tests for payment reconciliation and owner status requests."""

import pytest
from pytest_bdd import given, parsers, scenarios, then, when
from storefront.errors import ForbiddenTransition, InvalidSignature
from storefront.payment.verifier.fake_verifier import TEST_SIGNATURE

scenarios("features/payment_reconciliation.feature")


@pytest.fixture()
def outcome():
    """Captures the result of the last When step."""
    return {"ack": None, "exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a pending order paid with intent "{intent}"'), target_fixture="order")
def pending_order(place_order, intent):
    return place_order(payment={"method": "card", "payment_intent_id": intent})


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the processor reports "{event_type}" as event "{event_id}"'))
def processor_reports(services, order, payment_event, outcome, event_type, event_id):
    raw = payment_event(event_type, order.payment_intent_id, event_id)
    outcome["ack"] = services.payments.handle(raw, TEST_SIGNATURE)


@when(parsers.cfparse('a notification with signature "{signature}" reports "{event_type}"'))
def forged_notification(services, order, payment_event, outcome, signature, event_type):
    try:
        services.payments.handle(payment_event(event_type, order.payment_intent_id), signature)
    except InvalidSignature as exc:
        outcome["exc"] = exc


@when(parsers.cfparse('the order is shipped with "{carrier}" tracking "{tracking}"'))
def ship_order(services, order, carrier, tracking):
    services.lifecycle.ship(str(order.id), carrier, tracking)


@when(parsers.cfparse('the owner requests status "{status}"'))
def owner_requests_status(services, order, outcome, status):
    try:
        outcome["ack"] = services.lifecycle.request_status(str(order.id), order.owner_id, status)
    except ForbiddenTransition as exc:
        outcome["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(services, order, status):
    assert services.orders.get(str(order.id)).status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def payment_status_is(services, order, status):
    assert services.orders.get(str(order.id)).payment_status == status


@then(parsers.cfparse('the cancellation reason is "{reason}"'))
def cancellation_reason_is(services, order, reason):
    assert services.orders.get(str(order.id)).cancelled_reason == reason


@then(parsers.cfparse('the last delivery is acknowledged as "{status}"'))
def last_ack_is(outcome, status):
    assert outcome["ack"].status == status


@then("the delivery is rejected as unauthentic")
def delivery_rejected(outcome):
    assert isinstance(outcome["exc"], InvalidSignature)


@then("the request is accepted")
def request_accepted(outcome):
    assert outcome["exc"] is None
    assert outcome["ack"].status == "cancelled"


@then("the request is forbidden")
def request_forbidden(outcome):
    assert isinstance(outcome["exc"], ForbiddenTransition)
    assert outcome["exc"].status_code == 403
