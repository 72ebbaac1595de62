"""Fire-and-forget order confirmation dispatch.

Messages are rendered on the request thread from the order snapshot, then
handed to a worker pool. Nothing here ever raises into the caller: send
failures are logged and dropped.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait

import structlog

from storefront.notification.confirmation import ConfirmationMessage, render_confirmation
from storefront.notification.email_port import EmailPort

logger = structlog.get_logger(__name__)


class OrderNotifier:
    def __init__(self, email: EmailPort, executor: ThreadPoolExecutor, client_url: str):
        self.email = email
        self.executor = executor
        self.client_url = client_url
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def order_placed(self, order, recipient: str | None = None) -> Future | None:
        to = recipient or order.shipping_address.email
        if not to:
            logger.warning("confirmation_skipped_no_recipient", order_number=order.order_number)
            return None

        message = render_confirmation(
            to=to,
            order_number=order.order_number,
            items=[
                {
                    "name": item.name,
                    "quantity": item.quantity,
                    "price": item.price,
                    "size": item.size,
                    "color": item.color,
                }
                for item in order.items
            ],
            total=order.total,
            client_url=self.client_url,
        )

        try:
            future = self.executor.submit(self._deliver, order.order_number, message)
        except RuntimeError as exc:
            # Executor already shut down
            logger.error("confirmation_not_queued", order_number=order.order_number, error=str(exc))
            return None

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _deliver(self, order_number: str, message: ConfirmationMessage) -> dict | None:
        try:
            result = self.email.send(
                to=message.to,
                subject=message.subject,
                body=message.body,
                html_body=message.html_body,
            )
        except Exception as e:
            logger.error("confirmation_email_error", order_number=order_number, error=str(e))
            return None

        if result.get("status") != "sent":
            logger.error("confirmation_email_failed", order_number=order_number, error=result.get("error"))
        else:
            logger.info("confirmation_email_sent", order_number=order_number, message_id=result.get("message_id"))
        return result

    def flush(self, timeout: float | None = None) -> None:
        """Block until queued confirmations have been attempted."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)
