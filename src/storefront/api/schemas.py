"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer), separate from the
Protean aggregates. The wire format is camelCase; Python attributes stay
snake_case.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(ApiModel):
    full_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    postal_code: str
    country: str


class BillingAddressSchema(ApiModel):
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class OrderItemSchema(ApiModel):
    product_id: str
    name: str
    image: str | None = None
    quantity: int
    size: str = ""
    color: str = ""
    price: float = Field(ge=0)


class PaymentSchema(ApiModel):
    method: str = "card"
    stripe_payment_intent_id: str | None = None
    stripe_checkout_session_id: str | None = None
    currency: str = "usd"


class ShippingSchema(ApiModel):
    method: str = "standard"


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(ApiModel):
    items: list[OrderItemSchema] = Field(default_factory=list)
    shipping_address: AddressSchema | None = None
    billing_address: BillingAddressSchema | None = None
    payment: PaymentSchema | None = None
    shipping: ShippingSchema | None = None
    subtotal: float = Field(default=0.0, ge=0)
    tax: float = Field(default=0.0, ge=0)
    shipping_cost: float = Field(default=0.0, ge=0)
    total: float | None = Field(default=None, ge=0)
    notes: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "items": [
                        {
                            "productId": "prod-001",
                            "name": "Linen Shirt",
                            "image": "https://cdn.example.com/linen.jpg",
                            "quantity": 2,
                            "size": "M",
                            "color": "white",
                            "price": 25.0,
                        }
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
                    "payment": {"method": "card", "stripePaymentIntentId": "pi_123"},
                    "subtotal": 50.0,
                    "tax": 4.0,
                    "shippingCost": 5.0,
                    "total": 59.0,
                }
            ]
        }
    )


class UpdateOrderStatusRequest(ApiModel):
    status: str
    reason: str | None = None


class CancelOrderRequest(ApiModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddCartItemRequest(ApiModel):
    product_id: str
    name: str
    image: str
    price: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    size: str | None = None
    color: str | None = None


class UpdateCartItemRequest(ApiModel):
    quantity: int = Field(ge=0)
    size: str | None = None
    color: str | None = None


class GuestCartItemSchema(ApiModel):
    id: str
    name: str
    image: str | None = None
    price: float = Field(ge=0)
    quantity: int | None = Field(default=None, ge=1)
    size: str | None = None
    color: str | None = None


class SyncCartRequest(ApiModel):
    guest_items: list[GuestCartItemSchema]
    merge_token: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderItemView(ApiModel):
    product_id: str
    name: str
    image: str | None = None
    quantity: int
    size: str = ""
    color: str = ""
    price: float


class PaymentView(ApiModel):
    method: str
    stripe_payment_intent_id: str | None = None
    stripe_checkout_session_id: str | None = None
    status: str
    amount: float
    currency: str


class ShippingView(ApiModel):
    method: str
    cost: float
    tracking_number: str | None = None
    carrier: str | None = None


class OrderView(ApiModel):
    id: str
    order_number: str
    user_id: str
    items: list[OrderItemView]
    shipping_address: AddressSchema
    billing_address: BillingAddressSchema
    payment: PaymentView
    shipping: ShippingView
    status: str
    subtotal: float
    tax: float
    shipping_cost: float
    total: float
    notes: str | None = None
    cancelled_at: datetime | None = None
    cancelled_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderView":
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            user_id=str(order.owner_id),
            items=[
                OrderItemView(
                    product_id=str(item.product_id),
                    name=item.name,
                    image=item.image,
                    quantity=item.quantity,
                    size=item.size or "",
                    color=item.color or "",
                    price=item.price,
                )
                for item in order.items
            ],
            shipping_address=AddressSchema(**order.shipping_address.to_dict()),
            billing_address=BillingAddressSchema(**(order.billing_address.to_dict() if order.billing_address else {})),
            payment=PaymentView(
                method=order.payment_method,
                stripe_payment_intent_id=order.payment_intent_id,
                stripe_checkout_session_id=order.checkout_session_id,
                status=order.payment_status,
                amount=order.payment_amount,
                currency=order.currency,
            ),
            shipping=ShippingView(
                method=order.shipping_method,
                cost=order.shipping_cost,
                tracking_number=order.tracking_number,
                carrier=order.carrier,
            ),
            status=order.status,
            subtotal=order.subtotal,
            tax=order.tax,
            shipping_cost=order.shipping_cost,
            total=order.total,
            notes=order.notes,
            cancelled_at=order.cancelled_at,
            cancelled_reason=order.cancelled_reason,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class CartItemView(ApiModel):
    product_id: str
    name: str
    image: str | None = None
    price: float
    quantity: int
    size: str = ""
    color: str = ""
    added_at: datetime | None = None


class CartView(ApiModel):
    user_id: str
    items: list[CartItemView]
    subtotal: float
    updated_at: datetime | None = None

    @classmethod
    def from_cart(cls, cart) -> "CartView":
        return cls(
            user_id=str(cart.owner_id),
            items=[
                CartItemView(
                    product_id=str(item.product_id),
                    name=item.name,
                    image=item.image,
                    price=item.price,
                    quantity=item.quantity,
                    size=item.size or "",
                    color=item.color or "",
                    added_at=item.added_at,
                )
                for item in cart.items
            ],
            subtotal=cart.subtotal or 0.0,
            updated_at=cart.updated_at,
        )


class TimelineEntryView(ApiModel):
    event_type: str
    description: str
    occurred_at: datetime


class Pagination(ApiModel):
    total: int
    page: int
    limit: int
    pages: int


class Envelope(ApiModel):
    success: bool = True
    message: str | None = None


class OrderData(ApiModel):
    order: OrderView


class OrderResponse(Envelope):
    data: OrderData


class OrderListData(ApiModel):
    orders: list[OrderView]
    pagination: Pagination


class OrderListResponse(Envelope):
    data: OrderListData


class TimelineData(ApiModel):
    entries: list[TimelineEntryView]


class TimelineResponse(Envelope):
    data: TimelineData


class CartData(ApiModel):
    cart: CartView


class CartResponse(Envelope):
    data: CartData


class WebhookAckResponse(ApiModel):
    received: bool = True
    event_id: str
    event_type: str
    status: str
    order_id: str | None = None
    order_status: str | None = None
    payment_status: str | None = None
