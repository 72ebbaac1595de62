"""Error taxonomy for the storefront context.

Field-level input problems are raised as protean's ``ValidationError``. Every
other failure a caller can observe is one of the classes below, each carrying
the HTTP status the API layer answers with.
"""

from typing import Any


class StorefrontError(Exception):
    """Base exception for storefront failures."""

    status_code = 500
    code = "STOREFRONT_ERROR"
    retryable = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": False, "message": self.message, "error": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class BadRequest(StorefrontError):
    status_code = 400
    code = "BAD_REQUEST"


class Unauthenticated(StorefrontError):
    status_code = 401
    code = "UNAUTHENTICATED"


class NotFound(StorefrontError):
    status_code = 404
    code = "NOT_FOUND"


class OrderNotFound(NotFound):
    def __init__(self, reference: str | None = None):
        super().__init__("Order not found", {"reference": reference} if reference else None)


class CartNotFound(NotFound):
    def __init__(self):
        super().__init__("Cart not found")


class CartItemNotFound(NotFound):
    def __init__(self, product_id: str):
        super().__init__("Item not found in cart", {"productId": product_id})


class ForbiddenTransition(StorefrontError):
    """A requested status change is not allowed from the order's current status."""

    status_code = 403
    code = "FORBIDDEN_TRANSITION"

    def __init__(self, message: str, current_status: str | None = None, target_status: str | None = None):
        self.current_status = current_status
        self.target_status = target_status
        details = {}
        if current_status is not None:
            details["currentStatus"] = current_status
        if target_status is not None:
            details["targetStatus"] = target_status
        super().__init__(message, details)


class InvalidSignature(StorefrontError):
    """Webhook payload could not be authenticated. Never retried by the sender."""

    status_code = 400
    code = "INVALID_SIGNATURE"

    def __init__(self, message: str = "Webhook signature verification failed"):
        super().__init__(message)


class DuplicateKey(StorefrontError):
    status_code = 409
    code = "DUPLICATE_KEY"


class DuplicateOrderNumber(DuplicateKey):
    retryable = True

    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(f"Order number {order_number} is already taken", {"orderNumber": order_number})


class ServiceUnavailable(StorefrontError):
    """Storage is unreachable or contended. The whole request may be retried."""

    status_code = 503
    code = "SERVICE_UNAVAILABLE"
    retryable = True

    def __init__(self, message: str = "Database connection not available. Please try again later.", details=None):
        super().__init__(message, details)


class LockTimeout(ServiceUnavailable):
    code = "LOCK_TIMEOUT"

    def __init__(self, key: str, timeout: float):
        super().__init__(
            f"Timed out after {timeout}s waiting for a lock on {key}",
            {"key": key, "timeout": timeout},
        )


class ExhaustedAllocation(ServiceUnavailable):
    code = "ORDER_NUMBER_EXHAUSTED"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            "Failed to generate unique order number after multiple attempts",
            {"attempts": attempts},
        )
