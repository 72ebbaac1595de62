"""Ledger of processed payment-processor events, keyed by the sender's event id."""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront


class ReceiptOutcome(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


@storefront.aggregate
class PaymentEventReceipt:
    event_id = Identifier(identifier=True, required=True)
    event_type = String(required=True, max_length=100)
    order_id = Identifier()
    outcome = String(choices=ReceiptOutcome, required=True)
    received_at = DateTime()

    @classmethod
    def record(cls, event_id, event_type, order_id, outcome: ReceiptOutcome):
        return cls(
            event_id=event_id,
            event_type=event_type,
            order_id=order_id,
            outcome=outcome.value,
            received_at=datetime.now(UTC),
        )
