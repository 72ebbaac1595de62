"""Order Creation Service: turns a checkout submission into a persisted pending order.

Flow: validate → allocate a number → insert the order and clear the owner's
cart in one unit of work → queue the confirmation email. A number collision
at insert time gets one more allocation; every other failure propagates and
leaves the cart untouched.
"""

import structlog
from protean.exceptions import ValidationError

from storefront.cart.service import CartService
from storefront.errors import DuplicateOrderNumber
from storefront.notification.notifier import OrderNotifier
from storefront.order.numbering import OrderNumberAllocator
from storefront.order.order import Order, ShippingAddress, amounts_match
from storefront.order.store import OrderStore

logger = structlog.get_logger(__name__)

_INSERT_ATTEMPTS = 2

_LINE_FIELDS = ("product_id", "name", "image", "quantity", "size", "color", "price")

_ADDRESS_FIELDS = ("full_name", "email", "phone", "address", "city", "state", "postal_code", "country")


def _address(raw: dict | None) -> dict | None:
    if not raw:
        return None
    return {key: raw.get(key) for key in _ADDRESS_FIELDS if raw.get(key) is not None}


def _line(raw: dict) -> dict:
    line = {key: raw.get(key) for key in _LINE_FIELDS}
    line["size"] = line["size"] or ""
    line["color"] = line["color"] or ""
    return line


def validate_checkout(items, shipping_address, subtotal, tax, shipping_cost, total) -> None:
    """Fail fast with field-level errors before anything is allocated or written."""
    errors: dict[str, list[str]] = {}

    if not items:
        errors.setdefault("items", []).append("Order must contain at least one item")
    else:
        for index, item in enumerate(items):
            quantity = item.get("quantity")
            if quantity is None or quantity < 1:
                errors.setdefault("items", []).append(f"Item {index} quantity must be at least 1")

    if not shipping_address:
        errors.setdefault("shipping_address", []).append("Shipping address and total are required")
    if total is None:
        errors.setdefault("total", []).append("Shipping address and total are required")
    elif not amounts_match(total, (subtotal or 0.0) + (tax or 0.0) + (shipping_cost or 0.0)):
        errors.setdefault("total", []).append("Total must equal subtotal + tax + shipping cost")

    if errors:
        raise ValidationError(errors)


class OrderCreationService:
    def __init__(
        self,
        store: OrderStore,
        carts: CartService,
        allocator: OrderNumberAllocator,
        notifier: OrderNotifier,
    ):
        self.store = store
        self.carts = carts
        self.allocator = allocator
        self.notifier = notifier

    def create(
        self,
        owner_id: str,
        items: list[dict],
        shipping_address: dict | None,
        total: float | None,
        billing_address: dict | None = None,
        subtotal: float = 0.0,
        tax: float = 0.0,
        shipping_cost: float = 0.0,
        payment: dict | None = None,
        shipping: dict | None = None,
        notes: str | None = None,
        recipient: str | None = None,
    ) -> Order:
        subtotal = subtotal or 0.0
        tax = tax or 0.0
        shipping_cost = shipping_cost or 0.0
        validate_checkout(items, shipping_address, subtotal, tax, shipping_cost, total)

        payment = payment or {}
        shipping = shipping or {}
        lines = [_line(item) for item in items]
        address = ShippingAddress(**_address(shipping_address))
        billing_address = _address(billing_address)

        order_number = self.allocator.allocate()
        for attempt in range(1, _INSERT_ATTEMPTS + 1):
            order = Order.place(
                order_number=order_number,
                owner_id=owner_id,
                items=lines,
                shipping_address=address,
                billing_address=billing_address,
                subtotal=subtotal,
                tax=tax,
                shipping_cost=shipping_cost,
                total=total,
                payment_method=payment.get("method"),
                payment_intent_id=payment.get("payment_intent_id"),
                checkout_session_id=payment.get("checkout_session_id"),
                currency=payment.get("currency"),
                shipping_method=shipping.get("method"),
                notes=notes,
            )
            try:
                with self.carts.locked(owner_id):
                    cart = self.carts.cleared_for_checkout(owner_id)
                    self.store.insert(order, also=[cart] if cart is not None else [])
                break
            except DuplicateOrderNumber:
                if attempt == _INSERT_ATTEMPTS:
                    raise
                logger.warning("order_number_taken_at_insert", order_number=order_number, attempt=attempt)
                order_number = self.allocator.allocate()

        logger.info(
            "order_created",
            order_id=str(order.id),
            order_number=order.order_number,
            owner_id=str(owner_id),
            total=order.total,
        )

        try:
            self.notifier.order_placed(order, recipient=recipient)
        except Exception as e:
            logger.error("confirmation_dispatch_failed", order_number=order.order_number, error=str(e))

        return order
