"""Voltline Commerce FastAPI application.

Single-domain web server that processes commands synchronously via HTTP.
Every request runs inside the commerce domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → in-memory stores, fake payment and email adapters
#   - "production" → PostgreSQL, Stripe and the HTTP email API
import uuid

from commerce.domain import commerce
from commerce.utils.logging import add_context, clear_context, configure_logging
from commerce.wiring import build_services
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

configure_logging()
commerce.init()

with commerce.domain_context():
    services = build_services(commerce)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Voltline Commerce API",
    description="Checkouts, order completion, live inventory and vouchers",
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
    """Push the commerce domain context and a request id for each request."""
    add_context(request_id=request.headers.get("x-request-id") or str(uuid.uuid4()))
    try:
        with commerce.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from commerce.api import (  # noqa: E402
    checkout_router,
    inventory_router,
    maintenance_router,
    order_router,
    payment_router,
    voucher_router,
)
from commerce.api.errors import register_error_handlers  # noqa: E402

register_error_handlers(app)

app.include_router(checkout_router)
app.include_router(maintenance_router)
app.include_router(payment_router)
app.include_router(order_router)
app.include_router(inventory_router)
app.include_router(voucher_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": commerce.name,
            "payment_gateway": type(services.gateway).__name__,
            "email": type(services.email).__name__,
        }
    )
