"""Checkout load test scenarios.

Stateful SequentialTaskSet journeys: a shopper fills a cart, checks out,
gets paid through the webhook and reads the order back; a second shopper
cancels right after checkout.
"""

import uuid

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import cart_item_data, checkout_data, payment_event_payload, shopper_id
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import ShopperState

TEST_SIGNATURE = "test-signature"


class ShopperTaskSet(SequentialTaskSet):
    def on_start(self):
        user_id = shopper_id()
        self.state = ShopperState(user_id=user_id, email=f"{user_id}@example.com")

    @property
    def headers(self) -> dict:
        return {"X-User-Id": self.state.user_id, "X-User-Email": self.state.email}

    def add_to_cart(self):
        with self.client.post(
            "/cart/items",
            json=cart_item_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /cart/items",
        ) as resp:
            if resp.status_code == 200:
                self.state.cart_lines = len(resp.json()["data"]["cart"]["items"])
            else:
                resp.failure(f"Add cart item failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    def checkout(self):
        with self.client.get("/cart", headers=self.headers, catch_response=True, name="GET /cart") as resp:
            if resp.status_code != 200:
                resp.failure(f"Get cart failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()
            cart = resp.json()["data"]["cart"]

        self.state.payment_intent_id = f"pi_{uuid.uuid4().hex[:16]}"
        with self.client.post(
            "/orders",
            json=checkout_data(cart, self.state.email, self.state.payment_intent_id),
            headers=self.headers,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                order = resp.json()["data"]["order"]
                self.state.order_id = order["id"]
                self.state.order_number = order["orderNumber"]
            else:
                resp.failure(f"Create order failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    def deliver_payment_event(self, event_type: str, event_id: str | None = None):
        raw = payment_event_payload(event_type, self.state.payment_intent_id, event_id)
        with self.client.post(
            "/webhooks/payments",
            data=raw,
            headers={"Content-Type": "application/json", "Stripe-Signature": TEST_SIGNATURE},
            catch_response=True,
            name="POST /webhooks/payments",
        ) as resp:
            if resp.status_code == 200:
                self.state.delivered_event_ids.append(resp.json()["eventId"])
            else:
                resp.failure(f"Webhook failed: {resp.status_code} - {extract_error_detail(resp)}")


class PaidOrderJourney(ShopperTaskSet):
    """Add items -> Checkout -> Payment succeeded (delivered twice) -> Read order."""

    @task
    def add_first_item(self):
        self.add_to_cart()

    @task
    def add_second_item(self):
        self.add_to_cart()

    @task
    def place_order(self):
        self.checkout()

    @task
    def payment_succeeded(self):
        self.deliver_payment_event("payment_intent.succeeded")

    @task
    def payment_succeeded_redelivered(self):
        # Same event id again: must come back as a duplicate
        if not self.state.delivered_event_ids:
            self.interrupt()
        self.deliver_payment_event("payment_intent.succeeded", self.state.delivered_event_ids[-1])

    @task
    def read_order(self):
        with self.client.get(
            f"/orders/number/{self.state.order_number}",
            headers=self.headers,
            catch_response=True,
            name="GET /orders/number/{number}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Get order failed: {resp.status_code} - {extract_error_detail(resp)}")
            elif resp.json()["data"]["order"]["status"] != "processing":
                resp.failure("Order did not reach processing after payment")

    @task
    def list_orders(self):
        self.client.get("/orders?limit=10", headers=self.headers, name="GET /orders")
        self.interrupt(reschedule=False)


class CancelRaceJourney(ShopperTaskSet):
    """Add item -> Checkout -> Cancel and payment succeeded back to back -> Timeline."""

    @task
    def add_item(self):
        self.add_to_cart()

    @task
    def place_order(self):
        self.checkout()

    @task
    def cancel(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            json={"reason": "Load test cancellation"},
            headers=self.headers,
            catch_response=True,
            name="POST /orders/{id}/cancel",
        ) as resp:
            if resp.status_code not in (200, 400):
                resp.failure(f"Cancel failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def late_payment(self):
        self.deliver_payment_event("payment_intent.succeeded")

    @task
    def timeline(self):
        self.client.get(
            f"/orders/{self.state.order_id}/timeline",
            headers=self.headers,
            name="GET /orders/{id}/timeline",
        )
        self.interrupt(reschedule=False)


class ShopperUser(HttpUser):
    wait_time = between(0.5, 2)
    tasks = {PaidOrderJourney: 4, CancelRaceJourney: 1}
