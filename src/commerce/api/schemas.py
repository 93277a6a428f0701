"""Pydantic request/response schemas for the Commerce API.

These are external contracts, separate from the internal Protean commands.
Request bodies reject unknown fields.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

_STRICT = {"extra": "forbid"}


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    product_ref: str = Field(min_length=1, max_length=100)
    name: str | None = None
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)

    model_config = _STRICT


class ShippingSchema(BaseModel):
    name: str | None = None
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = Field(default="GB", max_length=2)
    phone: str | None = None
    cost: float = Field(default=0.0, ge=0)

    model_config = _STRICT


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Checkouts
# ---------------------------------------------------------------------------
class RecordCheckoutRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    items: list[CartItemSchema] = Field(min_length=1)
    shipping: ShippingSchema | None = None
    session_id: str | None = None
    voucher_code: str | None = Field(default=None, max_length=50)

    model_config = {
        "extra": "forbid",
        "json_schema_extra": {
            "examples": [
                {
                    "email": "buyer@example.com",
                    "items": [{"product_ref": "p45b", "name": "P45B Cell", "quantity": 10, "unit_price": 4.5}],
                    "shipping": {"name": "Ada Buyer", "line1": "1 High St", "city": "Leeds", "postal_code": "LS1 1AA"},
                }
            ]
        },
    }


class CheckoutIdResponse(BaseModel):
    checkout_id: str


class QuoteRequest(BaseModel):
    items: list[CartItemSchema] = Field(min_length=1)
    voucher_code: str | None = Field(default=None, max_length=50)
    shipping_cost: float = Field(default=0.0, ge=0)

    model_config = _STRICT


class PricedLineSchema(BaseModel):
    product_ref: str
    name: str | None = None
    quantity: int
    unit_price: float
    discount: float
    line_total: float


class QuoteResponse(BaseModel):
    lines: list[PricedLineSchema]
    list_subtotal: float
    volume_savings: float
    subtotal: float
    discount_total: float
    shipping_cost: float
    total: float
    voucher_applied: bool
    reason_code: str | None = None


class SweepResponse(BaseModel):
    abandoned_count: int


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineSchema(BaseModel):
    product_ref: str | None = None
    name: str | None = None
    quantity: int
    unit_price: float
    discount: float = 0.0
    line_total: float


class AppliedVoucherSchema(BaseModel):
    code: str
    voucher_type: str
    value: float
    discount_total: float
    free_shipping: bool = False


class OrderResponse(BaseModel):
    order_id: str
    status: str
    email: str
    payment_session_id: str
    items: list[OrderLineSchema]
    shipping: ShippingSchema | None = None
    voucher: AppliedVoucherSchema | None = None
    currency: str
    subtotal: float
    discount_total: float
    shipping_cost: float
    total: float
    amount_paid: float | None = None
    replayed: bool = False


class ShipOrderRequest(BaseModel):
    carrier: str | None = Field(default=None, max_length=100)
    tracking_number: str | None = Field(default=None, max_length=100)

    model_config = _STRICT


class WebhookResponse(BaseModel):
    received: bool = True
    order_id: str | None = None


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
class AvailabilitySchema(BaseModel):
    price: float
    stock: int
    tier: str


class VolumeTierSchema(BaseModel):
    min_quantity: int
    discount_percent: float


class LiveInventoryResponse(BaseModel):
    products: dict[str, AvailabilitySchema]
    volume_discounts: list[VolumeTierSchema]


class RegisterProductRequest(BaseModel):
    slug: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    price: float = Field(ge=0)
    category: Literal["POWER", "ENERGY", "PROTOTYPE"] = "POWER"

    model_config = _STRICT


class ProductIdResponse(BaseModel):
    product_id: str


class ReceiveBatchRequest(BaseModel):
    product_slug: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=50)
    stock_quantity: int = Field(ge=0)
    status: Literal["DRAFT", "PENDING", "LIVE", "DEPLETED", "ARCHIVED"] = "PENDING"

    model_config = _STRICT


class BatchIdResponse(BaseModel):
    batch_id: str


class ChangeBatchStatusRequest(BaseModel):
    status: Literal["DRAFT", "PENDING", "LIVE", "DEPLETED", "ARCHIVED"]

    model_config = _STRICT


class RestockBatchRequest(BaseModel):
    quantity: int = Field(ge=1)

    model_config = _STRICT


class DefineVolumeTierRequest(BaseModel):
    min_quantity: int = Field(ge=1)
    discount_percent: float = Field(gt=0, le=100)

    model_config = _STRICT


# ---------------------------------------------------------------------------
# Vouchers
# ---------------------------------------------------------------------------
class ValidateVoucherRequest(BaseModel):
    code: str = Field(max_length=50)
    items: list[CartItemSchema] | None = None
    shipping_cost: float = Field(default=0.0, ge=0)

    model_config = _STRICT


class DiscountSchema(BaseModel):
    code: str
    voucher_type: str
    value: float
    free_shipping: bool
    product_ids: list[str]
    min_spend: float | None = None
    max_usage_per_cart: int | None = None


class VoucherVerdictResponse(BaseModel):
    valid: bool
    reason_code: str | None = None
    discount: DiscountSchema | None = None
    pricing: QuoteResponse | None = None


class IssueVoucherRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    voucher_type: Literal["PERCENT", "FIXED_PRICE", "FIXED_AMOUNT"]
    value: float = Field(default=0.0, ge=0)
    min_spend: float | None = Field(default=None, ge=0)
    product_ids: list[str] = Field(default_factory=list)
    max_usage_per_cart: int | None = Field(default=None, ge=1)
    max_global_uses: int | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    expiry_date: datetime | None = None
    is_free_shipping: bool = False

    model_config = _STRICT


class VoucherIdResponse(BaseModel):
    voucher_id: str
