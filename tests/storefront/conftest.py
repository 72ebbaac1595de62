import json
from dataclasses import replace

import pytest


@pytest.fixture(scope="session")
def _storefront_domain():
    """Initialize the storefront domain once per session."""
    from storefront.domain import storefront

    storefront.init()
    return storefront


@pytest.fixture(scope="session", autouse=True)
def setup_db(_storefront_domain):
    from storefront.utils.db import drop_db, setup_db

    setup_db(_storefront_domain)

    yield

    drop_db(_storefront_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_storefront_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _storefront_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()


# ---------------------------------------------------------------------------
# Services wired with fakes
# ---------------------------------------------------------------------------
@pytest.fixture
def email():
    from storefront.notification.fake_email import FakeEmailAdapter

    return FakeEmailAdapter()


@pytest.fixture
def verifier():
    from storefront.payment.verifier.fake_verifier import FakeSignatureVerifier

    return FakeSignatureVerifier()


@pytest.fixture
def settings(_storefront_domain):
    from storefront.settings import load_settings

    return replace(load_settings(_storefront_domain), lock_timeout_seconds=1.0, payment_verifier="fake")


@pytest.fixture
def services(_storefront_domain, settings, email, verifier):
    from storefront.services import build_services

    svc = build_services(_storefront_domain, settings=settings, email=email, verifier=verifier)
    yield svc
    svc.shutdown()


# ---------------------------------------------------------------------------
# Checkout data
# ---------------------------------------------------------------------------
@pytest.fixture
def shipping_address():
    return {
        "full_name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+1 555 0100",
        "address": "12 Analytical Way",
        "city": "Springfield",
        "state": "IL",
        "postal_code": "62701",
        "country": "US",
    }


@pytest.fixture
def order_lines():
    return [
        {
            "product_id": "prod-001",
            "name": "Linen Shirt",
            "image": "https://cdn.example.com/linen.jpg",
            "quantity": 2,
            "size": "M",
            "color": "white",
            "price": 25.0,
        },
        {
            "product_id": "prod-002",
            "name": "Canvas Tote",
            "image": "https://cdn.example.com/tote.jpg",
            "quantity": 1,
            "size": "",
            "color": "",
            "price": 10.0,
        },
    ]


@pytest.fixture
def checkout(order_lines, shipping_address):
    """Keyword arguments for ``OrderCreationService.create``: 60 + 6 tax + 5 shipping."""
    return {
        "items": order_lines,
        "shipping_address": shipping_address,
        "subtotal": 60.0,
        "tax": 6.0,
        "shipping_cost": 5.0,
        "total": 71.0,
        "payment": {"method": "card", "payment_intent_id": "pi_001", "currency": "usd"},
    }


@pytest.fixture
def place_order(services, checkout):
    """Create and persist orders through the creation service."""

    def _place(owner_id="user-001", **overrides):
        payload = {**checkout, **overrides}
        return services.creation.create(owner_id=owner_id, **payload)

    return _place


@pytest.fixture
def make_order(order_lines, shipping_address):
    """Build an unpersisted pending order."""
    from storefront.order.order import Order, ShippingAddress

    def _make(order_number="ORD-20260101-123456", owner_id="user-001", **overrides):
        fields = {
            "order_number": order_number,
            "owner_id": owner_id,
            "items": order_lines,
            "shipping_address": ShippingAddress(**shipping_address),
            "subtotal": 60.0,
            "tax": 6.0,
            "shipping_cost": 5.0,
            "total": 71.0,
            "payment_intent_id": "pi_001",
        }
        fields.update(overrides)
        return Order.place(**fields)

    return _make


@pytest.fixture
def payment_event():
    """Serialized processor notification, as it arrives on the wire."""

    def _event(event_type, reference, event_id="evt_001", **extra):
        obj = {"payment_intent": reference} if event_type == "charge.refunded" else {"id": reference}
        obj.update(extra)
        return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()

    return _event


@pytest.fixture
def sign():
    """Build a ``Stripe-Signature`` header the way the payment processor does."""
    import hashlib
    import hmac
    import time

    def _sign(secret, payload, timestamp=None):
        timestamp = int(time.time()) if timestamp is None else timestamp
        digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign
