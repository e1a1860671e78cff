"""FastAPI routes for the Storefront — products, carts, orders, checkout and payments."""

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddToCartRequest,
    CartIdResponse,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    ConfigureGatewayRequest,
    CreateCartRequest,
    CreateOrderRequest,
    CreateProductRequest,
    ErrorResponse,
    FailOrderRequest,
    GatewayConfigResponse,
    OrderResponse,
    ProductIdResponse,
    ProductResponse,
    ReconcileCartsRequest,
    StatusResponse,
    UpdateCartQuantityRequest,
    UpdateProductRequest,
    WebhookAckResponse,
)
from storefront.cart.cart import ShoppingCart
from storefront.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from storefront.cart.management import ClearCart, CreateCart
from storefront.cart.reconciliation import reconcile_carts
from storefront.catalogue.management import AddProduct, RemoveProduct, RestockProduct, UpdateProduct
from storefront.catalogue.product import Product
from storefront.order.service import OrderService
from storefront.payments.gateway import get_gateway
from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.webhook import WebhookRejected, handle_gateway_event
from storefront.shared.results import HTTP_STATUS_FOR, ErrorKind
from storefront.shared.settings import is_production


def _error_response(error_kind: ErrorKind, message: str, order=None) -> JSONResponse:
    body = ErrorResponse(
        error=message,
        error_kind=error_kind.value,
        order_id=str(order.id) if order is not None else None,
    )
    return JSONResponse(status_code=HTTP_STATUS_FOR[error_kind], content=body.model_dump())


def _cart_response(cart: ShoppingCart) -> CartResponse:
    return CartResponse(
        id=str(cart.id),
        customer_id=str(cart.customer_id) if cart.customer_id else None,
        session_id=cart.session_id,
        items=cart.snapshot(),
        total=cart.total,
        revision=cart.revision or 0,
    )


def _load_cart(cart_id: str) -> CartResponse:
    return _cart_response(current_domain.repository_for(ShoppingCart).get(cart_id))


# ---------------------------------------------------------------------------
# Product Router (inventory CRUD)
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.get("", response_model=list[ProductResponse])
async def list_products(category: str | None = None, subcategory: str | None = None) -> list[ProductResponse]:
    products = current_domain.repository_for(Product).list_products(category=category, subcategory=subcategory)
    return [ProductResponse(**product.to_dict()) for product in products]


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def create_product(body: CreateProductRequest) -> ProductIdResponse:
    command = AddProduct(
        product_id=body.product_id,
        name=body.name,
        description=body.description,
        price=body.price,
        stock=body.stock,
        image_url=body.image_url,
        category=body.category,
        subcategory=body.subcategory,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str) -> ProductResponse:
    product = current_domain.repository_for(Product).get(product_id)
    return ProductResponse(**product.to_dict())


@product_router.put("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: str, body: UpdateProductRequest) -> ProductResponse:
    command = UpdateProduct(product_id=product_id, **body.model_dump(exclude_none=True))
    current_domain.process(command, asynchronous=False)
    product = current_domain.repository_for(Product).get(product_id)
    return ProductResponse(**product.to_dict())


@product_router.delete("/{product_id}", response_model=StatusResponse)
async def delete_product(product_id: str) -> StatusResponse:
    current_domain.process(RemoveProduct(product_id=product_id), asynchronous=False)
    return StatusResponse(status="deleted")


@product_router.post("/{product_id}/restock", response_model=ProductResponse)
async def restock_product(product_id: str, quantity: int) -> ProductResponse:
    current_domain.process(RestockProduct(product_id=product_id, quantity=quantity), asynchronous=False)
    product = current_domain.repository_for(Product).get(product_id)
    return ProductResponse(**product.to_dict())


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    command = CreateCart(
        customer_id=body.customer_id,
        session_id=body.session_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.post("/reconcile", response_model=CartResponse)
async def reconcile(body: ReconcileCartsRequest) -> CartResponse:
    """Fold the session's guest cart into the customer's cart (called on sign-in)."""
    cart = reconcile_carts(body.customer_id, body.session_id)
    return _cart_response(cart)


@cart_router.get("/{cart_id}", response_model=CartResponse)
async def get_cart(cart_id: str) -> CartResponse:
    return _load_cart(cart_id)


@cart_router.post("/{cart_id}/items", response_model=CartResponse)
async def add_to_cart(cart_id: str, body: AddToCartRequest) -> CartResponse:
    command = AddToCart(
        cart_id=cart_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _load_cart(cart_id)


@cart_router.put("/{cart_id}/items/{product_id}", response_model=CartResponse)
async def update_cart_quantity(cart_id: str, product_id: str, body: UpdateCartQuantityRequest) -> CartResponse:
    command = UpdateCartQuantity(
        cart_id=cart_id,
        product_id=product_id,
        new_quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _load_cart(cart_id)


@cart_router.delete("/{cart_id}/items/{product_id}", response_model=CartResponse)
async def remove_from_cart(cart_id: str, product_id: str) -> CartResponse:
    current_domain.process(RemoveFromCart(cart_id=cart_id, product_id=product_id), asynchronous=False)
    return _load_cart(cart_id)


@cart_router.delete("/{cart_id}/items", response_model=CartResponse)
async def clear_cart(cart_id: str) -> CartResponse:
    current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)
    return _load_cart(cart_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post(
    "",
    status_code=201,
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def create_order(body: CreateOrderRequest):
    result = OrderService().place_order(
        customer_id=body.customer_id,
        customer_email=body.customer_email,
        line_items=[item.model_dump() for item in body.line_items],
        total_amount=body.total_amount,
        shipping_address=body.shipping_address.model_dump(),
        shipping_method=body.shipping_method,
    )
    if not result.ok:
        return _error_response(result.error_kind, result.message, result.order)
    return OrderResponse(**result.order.to_dict())


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(customer_id: str) -> list[OrderResponse]:
    orders = OrderService().orders_for_customer(customer_id)
    return [OrderResponse(**order.to_dict()) for order in orders]


@order_router.get("/{order_id}", response_model=OrderResponse, responses={404: {"model": ErrorResponse}})
async def get_order(order_id: str):
    order = OrderService().get_order(order_id)
    if order is None:
        return _error_response(ErrorKind.NOT_FOUND, f"Order not found: {order_id}")
    return OrderResponse(**order.to_dict())


@order_router.post("/{order_id}/stock/retry", response_model=OrderResponse)
async def retry_stock_commit(order_id: str):
    """Retry the stock step of an order left pending by a partial failure."""
    result = OrderService().commit_stock(order_id)
    if not result.ok:
        return _error_response(result.error_kind, result.message, result.order)
    return OrderResponse(**result.order.to_dict())


@order_router.post("/{order_id}/fail", response_model=OrderResponse)
async def fail_order(order_id: str, body: FailOrderRequest):
    """Abandon a pending order. Stock already taken for it is not returned."""
    result = OrderService().fail_order(order_id, body.reason)
    if not result.ok:
        return _error_response(result.error_kind, result.message, result.order)
    return OrderResponse(**result.order.to_dict())


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", status_code=201, response_model=CheckoutResponse)
async def checkout(body: CheckoutRequest):
    """Place an order from the customer's cart and open a hosted payment session."""
    result = OrderService().checkout(
        customer_id=body.customer_id,
        customer_email=body.customer_email,
        cart_id=body.cart_id,
        shipping_address=body.shipping_address.model_dump(),
        shipping_method=body.shipping_method,
        return_origin=body.return_origin,
    )
    if not result.ok:
        return _error_response(result.error_kind, result.message, result.order)

    current_domain.process(ClearCart(cart_id=body.cart_id), asynchronous=False)
    return CheckoutResponse(order_id=str(result.order.id), session_id=result.session_id, url=result.url)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/checkout-session", response_model=CheckoutSessionResponse)
async def create_payment_session(body: CheckoutSessionRequest, request: Request):
    """Open a hosted payment session for an existing pending order, charging its stored total."""
    result = OrderService().request_payment(
        body.order_id,
        line_items=[item.model_dump() for item in body.line_items] if body.line_items else None,
        return_origin=body.return_origin or request.headers.get("origin"),
    )
    if not result.ok:
        return _error_response(result.error_kind, result.message, result.order)
    return CheckoutSessionResponse(session_id=result.session_id, url=result.url)


@payment_router.post("/webhook", response_model=WebhookAckResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
) -> WebhookAckResponse:
    """Payment provider callback. The raw body is verified before anything is read from it."""
    payload = await request.body()
    try:
        outcome = handle_gateway_event(payload, stripe_signature)
    except WebhookRejected as exc:
        raise HTTPException(status_code=400, detail=f"Webhook Error: {exc}")
    return WebhookAckResponse(status=outcome.status)


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if is_production():
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )
