import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def client(services):
    from storefront.api.application import create_app

    return TestClient(create_app(services))


@pytest.fixture()
def auth():
    """Identity headers set by the upstream auth layer."""

    def _auth(user_id="user-001", email=None):
        headers = {"X-User-Id": user_id}
        if email:
            headers["X-User-Email"] = email
        return headers

    return _auth


@pytest.fixture()
def checkout_body():
    return {
        "items": [
            {
                "productId": "prod-001",
                "name": "Linen Shirt",
                "image": "https://cdn.example.com/linen.jpg",
                "quantity": 2,
                "size": "M",
                "color": "white",
                "price": 25.0,
            },
            {
                "productId": "prod-002",
                "name": "Canvas Tote",
                "image": "https://cdn.example.com/tote.jpg",
                "quantity": 1,
                "price": 10.0,
            },
        ],
        "shippingAddress": {
            "fullName": "Ada Lovelace",
            "email": "ada@example.com",
            "phone": "+1 555 0100",
            "address": "12 Analytical Way",
            "city": "Springfield",
            "state": "IL",
            "postalCode": "62701",
            "country": "US",
        },
        "payment": {"method": "card", "stripePaymentIntentId": "pi_001"},
        "shipping": {"method": "express"},
        "subtotal": 60.0,
        "tax": 6.0,
        "shippingCost": 5.0,
        "total": 71.0,
        "notes": "Leave at the door",
    }


@pytest.fixture()
def create_order(client, auth, checkout_body):
    """POST /orders and return the created order payload."""

    def _create(user_id="user-001", **overrides):
        response = client.post("/orders", json={**checkout_body, **overrides}, headers=auth(user_id))
        assert response.status_code == 201, response.text
        return response.json()["data"]["order"]

    return _create
