"""Hosted checkout session creation.

Turns an order's charges (product lines, shipping and tax) into provider
line items (prices in minor units),
builds the success and cancel URLs from the caller's origin, and asks the
payment gateway for a session tagged with the order id.
"""

import structlog
from protean.exceptions import ValidationError

from storefront.payments.gateway import get_gateway
from storefront.payments.gateway.port import CheckoutSessionResult, PaymentGateway
from storefront.shared.settings import get_settings

logger = structlog.get_logger(__name__)


def to_minor_units(amount) -> int:
    return int(round(float(amount) * 100))


def to_provider_line_items(line_items: list[dict], currency: str) -> list[dict]:
    """Convert line items to the provider's `price_data` shape."""
    provider_items = []
    for index, item in enumerate(line_items):
        name = item.get("name")
        unit_price = item.get("unit_price")
        quantity = item.get("quantity")
        if not name or unit_price is None or float(unit_price) < 0 or not quantity or int(quantity) < 1:
            raise ValidationError({"line_items": [f"Line item {index + 1} needs a name, a price and a quantity"]})

        provider_items.append(
            {
                "price_data": {
                    "currency": currency.lower(),
                    "product_data": {
                        "name": name,
                        "images": [item["image_url"]] if item.get("image_url") else [],
                    },
                    "unit_amount": to_minor_units(unit_price),
                },
                "quantity": int(quantity),
            }
        )
    return provider_items


def order_charges(order) -> list[dict]:
    """Everything the customer pays for `order`: its lines, then shipping and tax.

    Tax is charged as whatever remains of the order total once the lines and
    shipping are counted in cents, so the session always adds up to
    `order.total_amount`.
    """
    charges = order.line_items()
    shipping_cents = to_minor_units(order.shipping_cost or 0)
    if shipping_cents > 0:
        charges.append(
            {
                "name": f"{(order.shipping_method or 'standard').capitalize()} shipping",
                "unit_price": shipping_cents / 100,
                "quantity": 1,
            }
        )

    charged_cents = sum(to_minor_units(item["unit_price"]) * int(item["quantity"]) for item in charges)
    tax_cents = to_minor_units(order.total_amount) - charged_cents
    if tax_cents > 0:
        charges.append({"name": "Tax", "unit_price": tax_cents / 100, "quantity": 1})
    return charges


def checkout_urls(order_id: str, return_origin: str | None = None) -> tuple[str, str]:
    origin = (return_origin or get_settings().base_url).rstrip("/")
    return f"{origin}/order-success?orderId={order_id}", f"{origin}/checkout"


def create_checkout_session(
    line_items: list[dict],
    order_id: str,
    return_origin: str | None = None,
    gateway: PaymentGateway | None = None,
) -> CheckoutSessionResult:
    """Open a hosted payment session for `order_id`.

    Raises ValidationError for an empty or malformed request. Any gateway
    problem comes back as an unsuccessful result; nothing is retried.
    """
    if not line_items:
        raise ValidationError({"line_items": ["Cart is empty"]})
    if not order_id:
        raise ValidationError({"order_id": ["Order id is required"]})

    currency = get_settings().currency
    provider_items = to_provider_line_items(line_items, currency)
    success_url, cancel_url = checkout_urls(order_id, return_origin)
    gateway = gateway or get_gateway()

    try:
        result = gateway.create_checkout_session(
            line_items=provider_items,
            order_id=str(order_id),
            success_url=success_url,
            cancel_url=cancel_url,
            currency=currency,
        )
    except Exception as exc:
        logger.error(
            "Payment gateway raised while creating checkout session",
            order_id=str(order_id),
            gateway=type(gateway).__name__,
            error=str(exc),
        )
        return CheckoutSessionResult(success=False, failure_reason=str(exc))

    if result.success:
        logger.info(
            "Checkout session created",
            order_id=str(order_id),
            session_id=result.session_id,
            line_items=len(provider_items),
        )
    else:
        logger.warning(
            "Checkout session creation failed",
            order_id=str(order_id),
            reason=result.failure_reason,
        )
    return result
