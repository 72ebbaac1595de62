"""FastAPI routes for the Storefront: orders, carts and the payment webhook.

Handlers are plain functions so FastAPI runs them on its worker threads:
order and cart mutations may wait on a per-record lock.
"""

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.concurrency import run_in_threadpool

from storefront.api.schemas import (
    AddCartItemRequest,
    CancelOrderRequest,
    CartData,
    CartResponse,
    CartView,
    CreateOrderRequest,
    OrderData,
    OrderListData,
    OrderListResponse,
    OrderResponse,
    OrderView,
    Pagination,
    SyncCartRequest,
    TimelineData,
    TimelineEntryView,
    TimelineResponse,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    WebhookAckResponse,
)
from storefront.errors import BadRequest, ForbiddenTransition, Unauthenticated
from storefront.projections.order_timeline import timeline_for
from storefront.services import Services


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_services(request: Request) -> Services:
    return request.app.state.services


def current_owner(x_user_id: str | None = Header(default=None)) -> str:
    """The authenticated caller, as asserted by the upstream auth layer."""
    if not x_user_id:
        raise Unauthenticated("Not authorized, no user identity supplied")
    return x_user_id


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
def create_order(
    body: CreateOrderRequest,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
    x_user_email: str | None = Header(default=None),
) -> OrderResponse:
    payment = body.payment
    order = services.creation.create(
        owner_id=owner_id,
        items=[item.model_dump() for item in body.items],
        shipping_address=body.shipping_address.model_dump() if body.shipping_address else None,
        billing_address=body.billing_address.model_dump(exclude_none=True) if body.billing_address else None,
        subtotal=body.subtotal,
        tax=body.tax,
        shipping_cost=body.shipping_cost,
        total=body.total,
        payment={
            "method": payment.method,
            "payment_intent_id": payment.stripe_payment_intent_id,
            "checkout_session_id": payment.stripe_checkout_session_id,
            "currency": payment.currency,
        }
        if payment
        else None,
        shipping={"method": body.shipping.method} if body.shipping else None,
        notes=body.notes,
        recipient=x_user_email,
    )
    return OrderResponse(message="Order created successfully", data=OrderData(order=OrderView.from_order(order)))


@order_router.get("", response_model=OrderListResponse)
def list_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> OrderListResponse:
    orders, pagination = services.lifecycle.list(owner_id, status=status, page=page, limit=limit)
    return OrderListResponse(
        data=OrderListData(
            orders=[OrderView.from_order(order) for order in orders],
            pagination=Pagination(**pagination),
        )
    )


@order_router.get("/number/{order_number}", response_model=OrderResponse)
def get_order_by_number(
    order_number: str,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> OrderResponse:
    order = services.lifecycle.get_by_number(order_number, owner_id)
    return OrderResponse(data=OrderData(order=OrderView.from_order(order)))


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> OrderResponse:
    order = services.lifecycle.get(order_id, owner_id)
    return OrderResponse(data=OrderData(order=OrderView.from_order(order)))


@order_router.get("/{order_id}/timeline", response_model=TimelineResponse)
def get_order_timeline(
    order_id: str,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> TimelineResponse:
    services.lifecycle.get(order_id, owner_id)
    entries = timeline_for(services.domain, order_id)
    return TimelineResponse(
        data=TimelineData(
            entries=[
                TimelineEntryView(event_type=e.event_type, description=e.description, occurred_at=e.occurred_at)
                for e in entries
            ]
        )
    )


@order_router.put("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> OrderResponse:
    """Owners may only request cancellation; everything else is 403."""
    order = services.lifecycle.request_status(order_id, owner_id, body.status, body.reason)
    return OrderResponse(message="Order status updated", data=OrderData(order=OrderView.from_order(order)))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> OrderResponse:
    try:
        order = services.lifecycle.cancel(order_id, owner_id, body.reason if body else None)
    except ForbiddenTransition as exc:
        raise BadRequest(exc.message, exc.details) from exc
    return OrderResponse(message="Order cancelled successfully", data=OrderData(order=OrderView.from_order(order)))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_response(cart, message=None) -> CartResponse:
    return CartResponse(message=message, data=CartData(cart=CartView.from_cart(cart)))


@cart_router.get("", response_model=CartResponse)
def get_cart(owner_id: str = Depends(current_owner), services: Services = Depends(get_services)) -> CartResponse:
    return _cart_response(services.carts.get(owner_id))


@cart_router.post("/items", response_model=CartResponse)
def add_cart_item(
    body: AddCartItemRequest,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> CartResponse:
    cart = services.carts.add_item(
        owner_id,
        product_id=body.product_id,
        name=body.name,
        image=body.image,
        price=body.price,
        quantity=body.quantity,
        size=body.size,
        color=body.color,
    )
    return _cart_response(cart, "Item added to cart")


@cart_router.put("/items/{product_id}", response_model=CartResponse)
def update_cart_item(
    product_id: str,
    body: UpdateCartItemRequest,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> CartResponse:
    cart = services.carts.update_item(owner_id, product_id, body.quantity, size=body.size, color=body.color)
    return _cart_response(cart, "Cart updated")


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
def remove_cart_item(
    product_id: str,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> CartResponse:
    return _cart_response(services.carts.remove_item(owner_id, product_id), "Item removed from cart")


@cart_router.delete("", response_model=CartResponse)
def clear_cart(owner_id: str = Depends(current_owner), services: Services = Depends(get_services)) -> CartResponse:
    return _cart_response(services.carts.clear(owner_id), "Cart cleared")


@cart_router.post("/sync", response_model=CartResponse)
def sync_cart(
    body: SyncCartRequest,
    owner_id: str = Depends(current_owner),
    services: Services = Depends(get_services),
) -> CartResponse:
    guest_lines = [
        {
            "product_id": item.id,
            "name": item.name,
            "image": item.image,
            "price": item.price,
            "quantity": item.quantity or 1,
            "size": item.size,
            "color": item.color,
        }
        for item in body.guest_items
    ]
    cart = services.carts.merge(owner_id, guest_lines, merge_token=body.merge_token)
    return _cart_response(cart, "Cart synced successfully")


# ---------------------------------------------------------------------------
# Payment Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/payments", response_model=WebhookAckResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> WebhookAckResponse:
    """Receive a payment processor notification. The raw body is what gets signed."""
    raw = await request.body()
    ack = await run_in_threadpool(services.payments.handle, raw, stripe_signature)
    return WebhookAckResponse(
        event_id=ack.event_id,
        event_type=ack.event_type,
        status=ack.status,
        order_id=ack.order_id,
        order_status=ack.order_status,
        payment_status=ack.payment_status,
    )
