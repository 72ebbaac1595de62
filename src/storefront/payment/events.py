"""Inbound payment-processor notification envelope and its classification."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from storefront.order.status import PaymentOutcome


class PaymentEventData(BaseModel):
    object: dict[str, Any] = Field(default_factory=dict)


class PaymentEventEnvelope(BaseModel):
    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    data: PaymentEventData = Field(default_factory=PaymentEventData)


class Correlation(Enum):
    PAYMENT_INTENT = "payment_intent"
    CHECKOUT_SESSION = "checkout_session"


@dataclass(frozen=True)
class ClassifiedEvent:
    outcome: PaymentOutcome
    correlation: Correlation
    reference: str | None


# event type → (outcome, correlation, key in data.object holding the reference)
_EVENT_TYPES = {
    "payment_intent.succeeded": (PaymentOutcome.SUCCEEDED, Correlation.PAYMENT_INTENT, "id"),
    "payment_intent.payment_failed": (PaymentOutcome.FAILED, Correlation.PAYMENT_INTENT, "id"),
    "charge.refunded": (PaymentOutcome.REFUNDED, Correlation.PAYMENT_INTENT, "payment_intent"),
    "checkout.session.completed": (PaymentOutcome.SUCCEEDED, Correlation.CHECKOUT_SESSION, "id"),
    "checkout.session.async_payment_succeeded": (PaymentOutcome.SUCCEEDED, Correlation.CHECKOUT_SESSION, "id"),
    "checkout.session.async_payment_failed": (PaymentOutcome.FAILED, Correlation.CHECKOUT_SESSION, "id"),
}


def classify(envelope: PaymentEventEnvelope) -> ClassifiedEvent | None:
    """Map a notification to a payment outcome. Returns None for types that carry no outcome."""
    entry = _EVENT_TYPES.get(envelope.type)
    if entry is None:
        return None

    outcome, correlation, key = entry
    obj = envelope.data.object

    # A completed session with a delayed payment method is not yet paid
    if envelope.type == "checkout.session.completed" and obj.get("payment_status") != "paid":
        return None

    reference = obj.get(key)
    return ClassifiedEvent(outcome=outcome, correlation=correlation, reference=str(reference) if reference else None)
