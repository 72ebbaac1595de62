"""Faker-based data generators for Locust load test scenarios.

Payloads match the camelCase field names of the Storefront API request
schemas and pass checkout validation (total = subtotal + tax + shipping).
"""

import json
import random
import uuid

from faker import Faker

fake = Faker()

PRODUCTS = [
    ("prod-linen-shirt", "Linen Shirt", 25.0),
    ("prod-canvas-tote", "Canvas Tote", 10.0),
    ("prod-wool-scarf", "Wool Scarf", 15.0),
    ("prod-denim-jacket", "Denim Jacket", 80.0),
    ("prod-cotton-tee", "Cotton Tee", 12.5),
]
SIZES = ["", "S", "M", "L", "XL"]
COLORS = ["", "white", "black", "navy", "olive"]


def shopper_id() -> str:
    return f"user-lt-{uuid.uuid4().hex[:10]}"


def cart_item_data() -> dict:
    product_id, name, price = random.choice(PRODUCTS)
    return {
        "productId": product_id,
        "name": name,
        "image": f"https://cdn.example.com/{product_id}.jpg",
        "price": price,
        "quantity": random.randint(1, 3),
        "size": random.choice(SIZES),
        "color": random.choice(COLORS),
    }


def shipping_address_data(email: str) -> dict:
    return {
        "fullName": fake.name(),
        "email": email,
        "phone": fake.phone_number()[:20],
        "address": fake.street_address(),
        "city": fake.city(),
        "state": fake.state_abbr(),
        "postalCode": fake.postcode(),
        "country": "US",
    }


def checkout_data(cart: dict, email: str, payment_intent_id: str) -> dict:
    """Build an order submission from the cart as returned by GET /cart."""
    items = [
        {
            "productId": item["productId"],
            "name": item["name"],
            "image": item["image"],
            "quantity": item["quantity"],
            "size": item["size"],
            "color": item["color"],
            "price": item["price"],
        }
        for item in cart["items"]
    ]
    subtotal = round(sum(item["price"] * item["quantity"] for item in items), 2)
    tax = round(subtotal * 0.08, 2)
    shipping_cost = 0.0 if subtotal >= 100 else 5.0
    return {
        "items": items,
        "shippingAddress": shipping_address_data(email),
        "payment": {"method": "card", "stripePaymentIntentId": payment_intent_id},
        "shipping": {"method": "standard"},
        "subtotal": subtotal,
        "tax": tax,
        "shippingCost": shipping_cost,
        "total": round(subtotal + tax + shipping_cost, 2),
    }


def payment_event_payload(event_type: str, payment_intent_id: str, event_id: str | None = None) -> bytes:
    """Serialized processor notification referencing a payment intent."""
    key = "payment_intent" if event_type == "charge.refunded" else "id"
    return json.dumps(
        {
            "id": event_id or f"evt_{uuid.uuid4().hex[:16]}",
            "type": event_type,
            "data": {"object": {key: payment_intent_id}},
        }
    ).encode()
