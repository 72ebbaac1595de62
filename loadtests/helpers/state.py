"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared across
users. State tracks ids returned by the API so follow-up calls can use them.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """Tracks one simulated shopper from cart to paid order."""

    user_id: str
    email: str
    cart_lines: int = 0
    order_id: str | None = None
    order_number: str | None = None
    payment_intent_id: str | None = None
    delivered_event_ids: list[str] = field(default_factory=list)
