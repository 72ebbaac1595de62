"""Order creation: validation, numbering, persistence, cart clearing and confirmation."""

import re
import threading

import pytest
from protean.exceptions import ValidationError
from storefront.cart.cart import Cart
from storefront.errors import DuplicateOrderNumber, ExhaustedAllocation, ServiceUnavailable
from storefront.order.order import Order
from storefront.order.status import OrderStatus, PaymentStatus
from storefront.order.store import OrderStore
from storefront.services import build_services


def _fill_cart(services, owner_id="user-001"):
    services.carts.add_item(owner_id, "prod-001", "Linen Shirt", "linen.jpg", 25.0, 2, size="M", color="white")
    services.carts.add_item(owner_id, "prod-002", "Canvas Tote", "tote.jpg", 10.0, 1)


class TestSuccessfulCreation:
    def test_persists_pending_order(self, services, place_order):
        order = place_order()

        stored = services.orders.get(str(order.id))
        assert stored.status == OrderStatus.PENDING.value
        assert stored.payment_status == PaymentStatus.PENDING.value
        assert stored.payment_amount == stored.total == 71.0
        assert stored.payment_intent_id == "pi_001"
        assert re.fullmatch(r"ORD-\d{8}-\d{6}", stored.order_number)

    def test_clears_owner_cart(self, services, place_order):
        _fill_cart(services)

        place_order()

        cart = services.carts.find("user-001")
        assert cart.items == []
        assert cart.subtotal == 0.0

    def test_leaves_other_carts_alone(self, services, place_order):
        _fill_cart(services, "user-002")
        place_order(owner_id="user-001")
        assert len(services.carts.find("user-002").items) == 2

    def test_works_without_a_cart(self, services, place_order):
        order = place_order()
        assert services.carts.find("user-001") is None
        assert services.orders.find(str(order.id)) is not None

    def test_sends_confirmation_to_shipping_email(self, services, place_order, email):
        order = place_order()
        services.notifier.flush(timeout=5)

        assert len(email.sent_emails) == 1
        sent = email.sent_emails[0]
        assert sent["to"] == "ada@example.com"
        assert sent["subject"] == f"Order Confirmation - {order.order_number}"
        assert "Linen Shirt" in sent["body"]
        assert "Total: $71.00" in sent["body"]
        assert "/account?tab=orders" in sent["html_body"]

    def test_explicit_recipient_wins(self, services, place_order, email):
        place_order(recipient="account@example.com")
        services.notifier.flush(timeout=5)
        assert email.sent_emails[0]["to"] == "account@example.com"


class TestEmailFailuresAreIgnored:
    def test_failed_delivery(self, services, place_order, email):
        email.configure(should_succeed=False)
        order = place_order()
        services.notifier.flush(timeout=5)

        assert services.orders.find(str(order.id)) is not None
        assert email.sent_emails == []

    def test_transport_exception(self, services, place_order, email):
        email.configure(raise_on_send=ConnectionRefusedError("smtp down"))
        order = place_order()
        services.notifier.flush(timeout=5)

        assert services.orders.find(str(order.id)) is not None


class TestValidation:
    def test_rejects_empty_items(self, services, place_order):
        with pytest.raises(ValidationError) as exc_info:
            place_order(items=[])
        assert exc_info.value.messages["items"] == ["Order must contain at least one item"]

    def test_rejects_zero_quantity(self, services, place_order, order_lines):
        lines = [dict(order_lines[0], quantity=0), order_lines[1]]
        with pytest.raises(ValidationError) as exc_info:
            place_order(items=lines)
        assert "items" in exc_info.value.messages

    def test_rejects_missing_shipping_address(self, place_order):
        with pytest.raises(ValidationError) as exc_info:
            place_order(shipping_address=None)
        assert exc_info.value.messages["shipping_address"] == ["Shipping address and total are required"]

    def test_rejects_missing_total(self, place_order):
        with pytest.raises(ValidationError) as exc_info:
            place_order(total=None)
        assert "total" in exc_info.value.messages

    def test_rejects_inconsistent_total(self, place_order):
        with pytest.raises(ValidationError) as exc_info:
            place_order(total=99.0)
        assert "total" in exc_info.value.messages

    def test_rejects_incomplete_shipping_address(self, place_order, shipping_address):
        del shipping_address["phone"]
        with pytest.raises(ValidationError) as exc_info:
            place_order(shipping_address=shipping_address)
        assert "phone" in exc_info.value.messages

    def test_invalid_request_changes_nothing(self, services, place_order, email):
        _fill_cart(services)
        with pytest.raises(ValidationError):
            place_order(items=[])

        assert len(services.carts.find("user-001").items) == 2
        assert services.orders.list_for_owner("user-001")[1] == 0
        services.notifier.flush(timeout=5)
        assert email.sent_emails == []


class TestNumberCollisions:
    def test_insert_collision_is_retried_with_a_new_number(self, services, place_order, monkeypatch):
        first = place_order()
        numbers = iter([first.order_number, "ORD-20260101-654321"])
        monkeypatch.setattr(services.allocator, "allocate", lambda: next(numbers))

        second = place_order(owner_id="user-002")

        assert second.order_number == "ORD-20260101-654321"

    def test_second_collision_propagates(self, services, place_order, monkeypatch):
        first = place_order()
        monkeypatch.setattr(services.allocator, "allocate", lambda: first.order_number)

        with pytest.raises(DuplicateOrderNumber):
            place_order(owner_id="user-002")

    def test_exhausted_allocation_leaves_cart_alone(self, services, place_order, monkeypatch):
        _fill_cart(services)
        monkeypatch.setattr(services.allocator, "exists", lambda number: True)

        with pytest.raises(ExhaustedAllocation):
            place_order()

        assert len(services.carts.find("user-001").items) == 2


class ScriptedAllocator:
    """Hands out a fixed sequence of numbers without checking storage."""

    def __init__(self, *numbers):
        self.numbers = list(numbers)
        self.calls = 0

    def allocate(self):
        self.calls += 1
        return self.numbers.pop(0)


class TestConcurrentCreation:
    def test_concurrent_orders_get_distinct_numbers(self, services, place_order, _storefront_domain):
        workers = 8
        start = threading.Barrier(workers)
        numbers, errors = [], []

        def create(i):
            with _storefront_domain.domain_context():
                start.wait()
                try:
                    numbers.append(place_order(owner_id=f"user-{i:03d}").order_number)
                except Exception as exc:
                    errors.append(exc)

        threads = [threading.Thread(target=create, args=(i,)) for i in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert len(numbers) == workers
        assert len(set(numbers)) == workers
        assert all(services.orders.find_by_number(number) is not None for number in numbers)

    def test_duplicate_candidate_is_caught_at_insert(self, _storefront_domain, settings, email, verifier, checkout):
        allocator = ScriptedAllocator("ORD-20260101-111111", "ORD-20260101-111111", "ORD-20260101-222222")
        services = build_services(
            _storefront_domain, settings=settings, email=email, verifier=verifier, allocator=allocator
        )
        try:
            first = services.creation.create(owner_id="user-001", **checkout)
            second = services.creation.create(owner_id="user-002", **checkout)
        finally:
            services.shutdown()

        assert first.order_number == "ORD-20260101-111111"
        assert second.order_number == "ORD-20260101-222222"
        assert allocator.calls == 3

    def test_insert_rejects_a_taken_number(self, services, place_order, make_order):
        first = place_order()

        with pytest.raises(DuplicateOrderNumber):
            services.orders.insert(make_order(order_number=first.order_number, owner_id="user-002"))

        assert services.orders.list_for_owner("user-002")[1] == 0

    def test_insert_in_flight_does_not_block_other_owners(self, services, place_order, _storefront_domain, monkeypatch):
        entered, release = threading.Event(), threading.Event()

        class PausingRepository:
            def __init__(self, inner):
                self.inner = inner

            def add(self, order):
                if str(order.owner_id) == "user-002":
                    entered.set()
                    release.wait(5)
                return self.inner.add(order)

            def __getattr__(self, name):
                return getattr(self.inner, name)

        monkeypatch.setattr(
            OrderStore, "repository", property(lambda store: PausingRepository(store.domain.repository_for(Order)))
        )

        def slow_checkout():
            with _storefront_domain.domain_context():
                place_order(owner_id="user-002")

        thread = threading.Thread(target=slow_checkout)
        thread.start()
        entered.wait(5)
        try:
            order = place_order(owner_id="user-001")
        finally:
            release.set()
            thread.join(timeout=5)

        assert services.orders.find_by_number(order.order_number) is not None
        assert services.orders.list_for_owner("user-002")[1] == 1


class TestPersistenceFailures:
    def test_store_outage_propagates_and_keeps_cart(self, services, place_order, monkeypatch):
        _fill_cart(services)

        def unavailable(order, also=()):
            raise ServiceUnavailable()

        monkeypatch.setattr(services.orders, "insert", unavailable)

        with pytest.raises(ServiceUnavailable):
            place_order()

        assert len(services.carts.find("user-001").items) == 2

    def test_order_and_cart_commit_together(self, services, place_order, _storefront_domain):
        _fill_cart(services)
        order = place_order()

        order_repo = _storefront_domain.repository_for(Order)
        cart_repo = _storefront_domain.repository_for(Cart)
        assert order_repo.get(str(order.id)).order_number == order.order_number
        assert cart_repo.find_by_owner("user-001").items == []
