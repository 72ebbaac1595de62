"""FastAPI application factory for the storefront."""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.errors import register_error_handlers
from storefront.api.routes import cart_router, order_router, webhook_router
from storefront.services import Services
from storefront.utils.logging import request_context


def create_app(services: Services) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        services.shutdown(wait=False)

    app = FastAPI(
        title="Storefront API",
        description="Orders, carts and payment reconciliation",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context and bind a request id for log correlation."""
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        with request_context(request_id), services.domain.domain_context():
            response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response

    register_error_handlers(app)

    app.include_router(order_router)
    app.include_router(cart_router)
    app.include_router(webhook_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "domain": services.domain.name}

    return app
