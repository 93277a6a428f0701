"""FastAPI routes for the Commerce API: checkouts, payments, orders, inventory and vouchers."""

import json

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from commerce.api.dependencies import get_services
from commerce.api.schemas import (
    BatchIdResponse,
    ChangeBatchStatusRequest,
    CheckoutIdResponse,
    DefineVolumeTierRequest,
    IssueVoucherRequest,
    LiveInventoryResponse,
    OrderResponse,
    ProductIdResponse,
    QuoteRequest,
    QuoteResponse,
    ReceiveBatchRequest,
    RecordCheckoutRequest,
    RegisterProductRequest,
    RestockBatchRequest,
    ShipOrderRequest,
    StatusResponse,
    SweepResponse,
    ValidateVoucherRequest,
    VolumeTierSchema,
    VoucherIdResponse,
    VoucherVerdictResponse,
    WebhookResponse,
)
from commerce.checkout.pricing import quote
from commerce.errors import PaymentNotConfirmed
from commerce.inventory.receiving import (
    ChangeBatchStatus,
    DeactivateVolumeTier,
    DefineVolumeTier,
    ReceiveBatch,
    RegisterProduct,
    RestockBatch,
)
from commerce.order.fulfillment import CompleteOrder, ShipOrder
from commerce.order.order import Order
from commerce.voucher.management import DisableVoucher, IssueVoucher
from commerce.wiring import Services

logger = structlog.get_logger(__name__)


def _order_response(order: Order, replayed: bool = False) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        status=order.status,
        email=order.email,
        payment_session_id=order.payment_session_id,
        items=[
            {
                "product_ref": line.product_ref,
                "name": line.name,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "discount": line.discount,
                "line_total": line.line_total,
            }
            for line in order.line_items
        ],
        shipping=order.shipping.to_dict() if order.shipping else None,
        voucher=order.voucher.to_dict() if order.voucher else None,
        currency=order.currency,
        subtotal=order.subtotal,
        discount_total=order.discount_total,
        shipping_cost=order.shipping_cost,
        total=order.total,
        amount_paid=order.amount_paid,
        replayed=replayed,
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkouts", tags=["checkouts"])


@checkout_router.post("", status_code=201, response_model=CheckoutIdResponse)
async def record_checkout(
    body: RecordCheckoutRequest,
    services: Services = Depends(get_services),
) -> CheckoutIdResponse:
    """Record the latest cart snapshot for an email."""
    checkout_id = services.lifecycle.record_checkout(
        email=body.email,
        items=[item.model_dump() for item in body.items],
        shipping=body.shipping.model_dump() if body.shipping else None,
        session_id=body.session_id,
        voucher_code=body.voucher_code,
    )
    return CheckoutIdResponse(checkout_id=checkout_id)


@checkout_router.post("/quote", response_model=QuoteResponse)
async def quote_checkout(
    body: QuoteRequest,
    services: Services = Depends(get_services),
) -> QuoteResponse:
    """Price a cart with volume tiers and an optional voucher."""
    verdict = services.vouchers.validate(body.voucher_code) if body.voucher_code else None
    result = quote(
        [item.model_dump() for item in body.items],
        services.inventory.get_volume_tiers(),
        verdict,
        body.shipping_cost,
    )
    return QuoteResponse(**result.to_dict())


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/abandoned-checkouts", response_model=SweepResponse)
def sweep_abandoned_checkouts(
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> SweepResponse:
    """Abandon idle carts and send recovery emails. Meant for a scheduler."""
    if services.sweep_secret and authorization != f"Bearer {services.sweep_secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")

    count = services.lifecycle.sweep_abandoned(idle_threshold=services.idle_threshold)
    return SweepResponse(abandoned_count=count)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> WebhookResponse:
    """Process a signed payment gateway event. Unverifiable payloads are rejected with no side effects."""
    payload = await request.body()
    event = services.gateway.construct_event(payload, stripe_signature)
    logger.info("Payment event received", event_id=event.event_id, event_type=event.event_type)

    # Completion calls the gateway and the email API; keep them off the event loop.
    result = await run_in_threadpool(services.pipeline.process_event, event)
    return WebhookResponse(received=True, order_id=str(result.order.id) if result else None)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/confirm", response_model=OrderResponse)
def confirm_order(
    session_id: str | None = None,
    services: Services = Depends(get_services),
):
    """Synchronous confirmation after the customer returns from payment."""
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing session_id")

    try:
        result = services.pipeline.complete_order(session_id)
    except PaymentNotConfirmed as exc:
        return JSONResponse(
            status_code=202,
            content={"status": "pending", "payment_status": exc.payment_status},
        )
    return _order_response(result.order, replayed=result.replayed)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return _order_response(order)


@order_router.post("/{order_id}/shipment", response_model=StatusResponse)
async def ship_order(order_id: str, body: ShipOrderRequest) -> StatusResponse:
    command = ShipOrder(
        order_id=order_id,
        carrier=body.carrier,
        tracking_number=body.tracking_number,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="shipped")


@order_router.post("/{order_id}/completion", response_model=StatusResponse)
async def complete_order(order_id: str) -> StatusResponse:
    current_domain.process(CompleteOrder(order_id=order_id), asynchronous=False)
    return StatusResponse(status="completed")


# ---------------------------------------------------------------------------
# Inventory Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.get("/live", response_model=LiveInventoryResponse)
async def live_inventory(
    ids: str | None = None,
    services: Services = Depends(get_services),
) -> LiveInventoryResponse:
    """Availability keyed by slug, plus the active volume tiers."""
    refs = [ref for ref in ids.split(",") if ref.strip()] if ids else None
    availability = services.inventory.get_availability(refs)
    return LiveInventoryResponse(
        products={slug: entry.to_dict() for slug, entry in availability.items()},
        volume_discounts=[tier.to_dict() for tier in services.inventory.get_volume_tiers()],
    )


@inventory_router.get("/volume-tiers", response_model=list[VolumeTierSchema])
async def volume_tiers(services: Services = Depends(get_services)) -> list[VolumeTierSchema]:
    return [VolumeTierSchema(**tier.to_dict()) for tier in services.inventory.get_volume_tiers()]


@inventory_router.post("/products", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(
        slug=body.slug,
        name=body.name,
        price=body.price,
        category=body.category,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@inventory_router.post("/batches", status_code=201, response_model=BatchIdResponse)
async def receive_batch(body: ReceiveBatchRequest) -> BatchIdResponse:
    command = ReceiveBatch(
        product_slug=body.product_slug,
        code=body.code,
        stock_quantity=body.stock_quantity,
        status=body.status,
    )
    result = current_domain.process(command, asynchronous=False)
    return BatchIdResponse(batch_id=result)


@inventory_router.post("/batches/{batch_id}/status", response_model=StatusResponse)
async def change_batch_status(batch_id: str, body: ChangeBatchStatusRequest) -> StatusResponse:
    current_domain.process(ChangeBatchStatus(batch_id=batch_id, status=body.status), asynchronous=False)
    return StatusResponse(status=body.status)


@inventory_router.post("/batches/{batch_id}/restock", response_model=StatusResponse)
async def restock_batch(batch_id: str, body: RestockBatchRequest) -> StatusResponse:
    current_domain.process(RestockBatch(batch_id=batch_id, quantity=body.quantity), asynchronous=False)
    return StatusResponse(status="restocked")


@inventory_router.post("/volume-tiers", status_code=201, response_model=StatusResponse)
async def define_volume_tier(body: DefineVolumeTierRequest) -> StatusResponse:
    command = DefineVolumeTier(
        min_quantity=body.min_quantity,
        discount_percent=body.discount_percent,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="defined")


@inventory_router.post("/volume-tiers/{min_quantity}/deactivate", response_model=StatusResponse)
async def deactivate_volume_tier(min_quantity: int) -> StatusResponse:
    current_domain.process(DeactivateVolumeTier(min_quantity=min_quantity), asynchronous=False)
    return StatusResponse(status="deactivated")


# ---------------------------------------------------------------------------
# Voucher Router
# ---------------------------------------------------------------------------
voucher_router = APIRouter(prefix="/vouchers", tags=["vouchers"])


@voucher_router.post("/validate", response_model=VoucherVerdictResponse)
async def validate_voucher(
    body: ValidateVoucherRequest,
    services: Services = Depends(get_services),
) -> VoucherVerdictResponse:
    """Verdict for a code; with items, also what it is worth for that cart."""
    verdict = services.vouchers.validate(body.code)
    response = verdict.to_dict()
    if body.items:
        priced = quote(
            [item.model_dump() for item in body.items],
            services.inventory.get_volume_tiers(),
            verdict,
            body.shipping_cost,
        )
        response["pricing"] = priced.to_dict()
    return VoucherVerdictResponse(**response)


@voucher_router.post("", status_code=201, response_model=VoucherIdResponse)
async def issue_voucher(body: IssueVoucherRequest) -> VoucherIdResponse:
    command = IssueVoucher(
        code=body.code,
        voucher_type=body.voucher_type,
        value=body.value,
        min_spend=body.min_spend,
        product_ids=json.dumps(body.product_ids),
        max_usage_per_cart=body.max_usage_per_cart,
        max_global_uses=body.max_global_uses,
        start_date=body.start_date,
        expiry_date=body.expiry_date,
        is_free_shipping=body.is_free_shipping,
    )
    result = current_domain.process(command, asynchronous=False)
    return VoucherIdResponse(voucher_id=result)


@voucher_router.post("/{code}/disable", response_model=StatusResponse)
async def disable_voucher(code: str) -> StatusResponse:
    current_domain.process(DisableVoucher(code=code), asynchronous=False)
    return StatusResponse(status="disabled")
