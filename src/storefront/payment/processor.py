"""Payment Event Processor: reconciles processor notifications with stored orders.

Deliveries may be duplicated, reordered or late. Each one is handled as:

1. authenticate the raw payload (reject before touching any state);
2. parse the envelope and skip event ids already in the receipt ledger;
3. classify the event type into a payment outcome, or acknowledge and stop;
4. locate the order by payment-intent or checkout-session id;
5. apply the outcome under the order's lock, where the transition table turns
   replays and stale outcomes into no-ops;
6. record a receipt.

Anything that is not a storage outage is acknowledged so the sender stops
retrying. Storage outages raise ``ServiceUnavailable`` so it retries.
"""

from dataclasses import dataclass

import pydantic
import structlog
from protean.domain import Domain
from protean.exceptions import ObjectNotFoundError

from storefront.errors import BadRequest, InvalidSignature
from storefront.order.order import Order
from storefront.order.store import OrderStore, storage_errors
from storefront.payment.events import ClassifiedEvent, Correlation, PaymentEventEnvelope, classify
from storefront.payment.receipt import PaymentEventReceipt, ReceiptOutcome
from storefront.payment.verifier.port import SignatureVerifier

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class WebhookAck:
    """What happened to a delivery. Every ack is answered with HTTP 200."""

    event_id: str
    event_type: str
    status: str  # applied | ignored | duplicate | unmatched | unhandled
    order_id: str | None = None
    order_status: str | None = None
    payment_status: str | None = None


class PaymentEventProcessor:
    def __init__(self, domain: Domain, store: OrderStore, verifier: SignatureVerifier):
        self.domain = domain
        self.store = store
        self.verifier = verifier

    @property
    def receipts(self):
        return self.domain.repository_for(PaymentEventReceipt)

    def handle(self, raw_payload: bytes, signature: str | None) -> WebhookAck:
        if not signature or not self.verifier.verify(raw_payload, signature):
            logger.warning("webhook_signature_rejected", security_event=True, payload_bytes=len(raw_payload))
            raise InvalidSignature()

        try:
            envelope = PaymentEventEnvelope.model_validate_json(raw_payload)
        except pydantic.ValidationError as exc:
            logger.warning("webhook_payload_malformed", error=str(exc))
            raise BadRequest("Malformed payment event payload") from exc

        log = logger.bind(event_id=envelope.id, event_type=envelope.type)

        if self._seen(envelope.id):
            log.info("webhook_duplicate")
            return WebhookAck(envelope.id, envelope.type, "duplicate")

        event = classify(envelope)
        if event is None:
            log.debug("webhook_unhandled_type")
            return WebhookAck(envelope.id, envelope.type, "unhandled")

        order = self._locate(event)
        if order is None:
            log.warning("webhook_order_not_found", correlation=event.correlation.value, reference=event.reference)
            return WebhookAck(envelope.id, envelope.type, "unmatched")

        order, plan = self.store.update(
            str(order.id), lambda o: o.apply_payment_outcome(event.outcome, payment_reference=event.reference)
        )

        if plan.applies and not plan.moves_order:
            log.warning(
                "payment_status_changed_without_order_transition",
                order_id=str(order.id),
                outcome=event.outcome.value,
                order_status=order.status,
                payment_status=order.payment_status,
            )
        elif plan.applies:
            log.info(
                "payment_outcome_applied",
                order_id=str(order.id),
                outcome=event.outcome.value,
                order_status=order.status,
                payment_status=order.payment_status,
            )
        else:
            log.info(
                "payment_outcome_ignored",
                order_id=str(order.id),
                outcome=event.outcome.value,
                order_status=order.status,
                payment_status=order.payment_status,
            )

        outcome = ReceiptOutcome.APPLIED if plan.applies else ReceiptOutcome.IGNORED
        self._record(envelope, str(order.id), outcome)

        return WebhookAck(
            envelope.id,
            envelope.type,
            outcome.value,
            order_id=str(order.id),
            order_status=order.status,
            payment_status=order.payment_status,
        )

    def _seen(self, event_id: str) -> bool:
        with storage_errors("find_receipt"):
            try:
                self.receipts.get(event_id)
            except ObjectNotFoundError:
                return False
            return True

    def _locate(self, event: ClassifiedEvent) -> Order | None:
        if event.correlation == Correlation.CHECKOUT_SESSION:
            return self.store.find_by_checkout_session(event.reference)
        return self.store.find_by_payment_intent(event.reference)

    def _record(self, envelope: PaymentEventEnvelope, order_id: str, outcome: ReceiptOutcome) -> None:
        # Best effort: the transition has already committed
        try:
            self.receipts.add(PaymentEventReceipt.record(envelope.id, envelope.type, order_id, outcome))
        except Exception as e:
            logger.error("webhook_receipt_not_recorded", event_id=envelope.id, error=str(e))
