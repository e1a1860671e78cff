"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. Request bodies reject fields they do not
declare, so a misspelled or unexpected field never silently reaches the
business logic.
"""

from pydantic import BaseModel, ConfigDict, Field


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(RequestModel):
    full_name: str = Field(min_length=1)
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str | None = None
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=1)
    phone: str | None = None


class LineItemSchema(RequestModel):
    product_id: str
    name: str | None = None
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    image_url: str | None = None


# ---------------------------------------------------------------------------
# Product Schemas
# ---------------------------------------------------------------------------
class CreateProductRequest(RequestModel):
    product_id: str | None = None
    name: str = Field(min_length=1)
    description: str | None = None
    price: float = Field(ge=0)
    stock: int = Field(ge=0, default=0)
    image_url: str | None = None
    category: str | None = None
    subcategory: str | None = None

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "name": "Canvas Tote",
                    "price": 24.0,
                    "stock": 40,
                    "category": "Bags",
                    "subcategory": "Totes",
                }
            ]
        },
    )


class UpdateProductRequest(RequestModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    category: str | None = None
    subcategory: str | None = None


class ProductResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    price: float
    stock: int
    image_url: str | None = None
    category: str | None = None
    subcategory: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class ProductIdResponse(BaseModel):
    product_id: str


# ---------------------------------------------------------------------------
# Cart Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(RequestModel):
    customer_id: str | None = None
    session_id: str | None = None


class AddToCartRequest(RequestModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(RequestModel):
    quantity: int  # Below 1 removes the line


class ReconcileCartsRequest(RequestModel):
    customer_id: str
    session_id: str | None = None


class CartLineResponse(BaseModel):
    product_id: str
    name: str
    unit_price: float
    quantity: int
    image_url: str | None = None


class CartResponse(BaseModel):
    id: str
    customer_id: str | None = None
    session_id: str | None = None
    items: list[CartLineResponse]
    total: float
    revision: int


class CartIdResponse(BaseModel):
    cart_id: str


# ---------------------------------------------------------------------------
# Order Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(RequestModel):
    customer_id: str
    customer_email: str | None = None
    line_items: list[LineItemSchema] = Field(min_length=1)
    total_amount: float | None = Field(default=None, ge=0)
    shipping_address: AddressSchema
    shipping_method: str = "standard"


class FailOrderRequest(RequestModel):
    reason: str = Field(min_length=1, max_length=500)


class CheckoutRequest(RequestModel):
    customer_id: str
    customer_email: str
    cart_id: str
    shipping_address: AddressSchema
    shipping_method: str = "standard"
    return_origin: str | None = None


class OrderResponse(BaseModel):
    id: str
    customer_id: str
    customer_email: str | None = None
    items: list[CartLineResponse]
    shipping_address: dict | None = None
    shipping_method: str | None = None
    subtotal: float
    shipping_cost: float
    tax_total: float
    total_amount: float
    currency: str
    status: str
    payment_session_id: str | None = None
    payment_reference: str | None = None
    failure_reason: str | None = None
    confirmation_sent: bool
    created_at: str | None = None
    updated_at: str | None = None
    completed_at: str | None = None


class CheckoutResponse(BaseModel):
    order_id: str
    session_id: str
    url: str


# ---------------------------------------------------------------------------
# Payment Schemas
# ---------------------------------------------------------------------------
class CheckoutSessionRequest(RequestModel):
    order_id: str
    line_items: list[LineItemSchema] | None = None
    return_origin: str | None = None


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: str


class WebhookAckResponse(BaseModel):
    received: bool = True
    status: str


class ConfigureGatewayRequest(RequestModel):
    should_succeed: bool = True
    failure_reason: str = "Payment provider unavailable"


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str


# ---------------------------------------------------------------------------
# Common
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error: str
    error_kind: str
    order_id: str | None = None
