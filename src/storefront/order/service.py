"""Order service — turns cart lines into a pending order and commits stock.

`place_order` runs three steps:

1. Validate the request and pre-check stock. This check is advisory: stock
   can move between here and step 3, so it only spares the customer an
   order that is bound to fail.
2. Record the order as Pending with a snapshot of the lines.
3. Decrement stock for each line, serialized per product. The product's
   conditional decrement is the real guard against overselling.

Failures in steps 1 and 2 leave nothing behind. A failure in step 3 leaves
the order Pending with stock taken for the lines that succeeded; the
succeeded and failed lines are logged and `commit_stock` can be called to
retry. Each product remembers which orders it has already been decremented
for, so a retry only touches the remaining lines.

Expected failures are returned as `OrderResult` / `CheckoutResult` values
carrying an `ErrorKind`, never raised.
"""

import json

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.catalogue.product import Product
from storefront.catalogue.stock import DecrementStock
from storefront.order.creation import PlaceOrder
from storefront.order.failure import FailOrder
from storefront.order.order import Order, OrderStatus, ShippingAddress
from storefront.order.payment import AttachCheckoutSession
from storefront.order.pricing import ShippingMethod, price_order
from storefront.order.results import CheckoutResult, OrderResult
from storefront.payments.checkout import create_checkout_session, order_charges, to_minor_units
from storefront.payments.gateway.port import PaymentGateway
from storefront.shared.locks import product_stock_locks
from storefront.shared.results import ErrorKind, describe
from storefront.shared.settings import get_settings

logger = structlog.get_logger(__name__)

ADDRESS_FIELDS = ("full_name", "street", "city", "state", "postal_code", "country", "phone")
REQUIRED_ADDRESS_FIELDS = ("full_name", "street", "city", "postal_code", "country")


class OrderService:
    def __init__(self, gateway: PaymentGateway | None = None):
        self.gateway = gateway

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id) -> Order | None:
        try:
            return current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            return None

    def orders_for_customer(self, customer_id) -> list[Order]:
        return current_domain.repository_for(Order).orders_for_customer(customer_id)

    # -------------------------------------------------------------------
    # Order placement
    # -------------------------------------------------------------------
    def place_order(
        self,
        customer_id,
        customer_email,
        line_items,
        total_amount=None,
        shipping_address=None,
        shipping_method=ShippingMethod.STANDARD.value,
    ) -> OrderResult:
        """Validate, record and commit stock for a new order.

        `total_amount`, when given, is the total the customer was shown; it
        must match the computed total to within a cent.
        """
        try:
            if not customer_id:
                raise ValidationError({"customer_id": ["Sign in to place an order"]})

            items = normalize_line_items(line_items)
            address = normalize_address(shipping_address)
            method = ShippingMethod.parse(shipping_method)
            pricing = price_order(items, method, get_settings().tax_rate)

            if total_amount is not None and not pricing.matches(total_amount):
                raise ValidationError(
                    {
                        "total_amount": [
                            f"Order total does not match: expected {pricing.total_amount:.2f}, "
                            f"got {float(total_amount):.2f}"
                        ]
                    }
                )

            self._check_stock(items)

            order_id = current_domain.process(
                PlaceOrder(
                    customer_id=str(customer_id),
                    customer_email=customer_email,
                    items=json.dumps(items),
                    shipping_address=json.dumps(address),
                    shipping_method=method.value,
                    subtotal=pricing.subtotal,
                    shipping_cost=pricing.shipping_cost,
                    tax_total=pricing.tax_total,
                    total_amount=pricing.total_amount,
                    currency=get_settings().currency,
                ),
                asynchronous=False,
            )
        except ValidationError as exc:
            message = describe(exc)
            logger.info("Order rejected", customer_id=str(customer_id), reason=message)
            return OrderResult.failure(ErrorKind.VALIDATION, message)
        except Exception as exc:
            logger.error("Order could not be recorded", customer_id=str(customer_id), error=str(exc))
            return OrderResult.failure(ErrorKind.DEPENDENCY, "The order could not be saved. Please try again.")

        logger.info(
            "Order placed",
            order_id=str(order_id),
            customer_id=str(customer_id),
            total_amount=pricing.total_amount,
            lines=len(items),
        )
        return self._commit_stock(current_domain.repository_for(Order).get(order_id))

    def _check_stock(self, items: list[dict]) -> None:
        """Fail fast when a product is missing or short. Fills in missing names and images."""
        repo = current_domain.repository_for(Product)
        for item in items:
            try:
                product = repo.get(item["product_id"])
            except ObjectNotFoundError:
                raise ValidationError({"product_id": [f"Product not found: {item['product_id']}"]})

            available = product.stock or 0
            if available < item["quantity"]:
                raise ValidationError(
                    {"stock": [f"Not enough stock for {product.name} ({product.id}). Only {available} left."]}
                )

            item["name"] = item.get("name") or product.name
            item["image_url"] = item.get("image_url") or product.image_url

    # -------------------------------------------------------------------
    # Stock commitment
    # -------------------------------------------------------------------
    def commit_stock(self, order_id) -> OrderResult:
        """Retry the stock step for an order; lines already applied are skipped."""
        order = self.get_order(order_id)
        if order is None:
            return OrderResult.failure(ErrorKind.NOT_FOUND, f"Order not found: {order_id}")
        if OrderStatus(order.status) == OrderStatus.FAILED:
            return OrderResult.failure(ErrorKind.VALIDATION, "Stock cannot be committed for a failed order", order)
        return self._commit_stock(order)

    def _commit_stock(self, order: Order) -> OrderResult:
        succeeded, failed = [], []
        for item in order.items:
            product_id = str(item.product_id)
            try:
                with product_stock_locks.hold(product_id):
                    current_domain.process(
                        DecrementStock(
                            product_id=product_id,
                            order_id=str(order.id),
                            quantity=item.quantity,
                        ),
                        asynchronous=False,
                    )
                succeeded.append(product_id)
            except ObjectNotFoundError:
                failed.append({"product_id": product_id, "reason": f"Product not found: {product_id}"})
            except ValidationError as exc:
                failed.append({"product_id": product_id, "reason": describe(exc)})
            except Exception as exc:
                failed.append({"product_id": product_id, "reason": str(exc)})

        if failed:
            logger.error(
                "Stock commit incomplete; order left pending",
                order_id=str(order.id),
                succeeded=succeeded,
                failed=[entry["product_id"] for entry in failed],
                reasons=[entry["reason"] for entry in failed],
            )
            return OrderResult.failure(
                ErrorKind.PARTIAL_FAILURE,
                "Order recorded but stock could not be reserved for: "
                + "; ".join(entry["reason"] for entry in failed),
                order,
            )

        logger.info("Stock committed for order", order_id=str(order.id), products=succeeded)
        return OrderResult.success(order)

    def fail_order(self, order_id, reason) -> OrderResult:
        """Move a pending order to Failed."""
        order = self.get_order(order_id)
        if order is None:
            return OrderResult.failure(ErrorKind.NOT_FOUND, f"Order not found: {order_id}")
        try:
            current_domain.process(FailOrder(order_id=str(order.id), reason=reason), asynchronous=False)
        except ValidationError as exc:
            return OrderResult.failure(ErrorKind.VALIDATION, describe(exc), order)

        logger.info("Order failed", order_id=str(order.id), reason=reason)
        return OrderResult.success(current_domain.repository_for(Order).get(order.id))

    # -------------------------------------------------------------------
    # Checkout (order + payment session)
    # -------------------------------------------------------------------
    def checkout(
        self,
        customer_id,
        customer_email,
        cart_id,
        shipping_address,
        shipping_method=ShippingMethod.STANDARD.value,
        return_origin=None,
    ) -> CheckoutResult:
        """Place an order from a stored cart and open its payment session."""
        try:
            cart = current_domain.repository_for(ShoppingCart).get(cart_id)
        except ObjectNotFoundError:
            return CheckoutResult.failure(ErrorKind.NOT_FOUND, f"Cart not found: {cart_id}")

        if str(cart.customer_id or "") != str(customer_id):
            return CheckoutResult.failure(ErrorKind.VALIDATION, "Cart does not belong to this customer")
        if not cart.items:
            return CheckoutResult.failure(ErrorKind.VALIDATION, "Cart is empty")

        placed = self.place_order(
            customer_id=customer_id,
            customer_email=customer_email,
            line_items=cart.snapshot(),
            shipping_address=shipping_address,
            shipping_method=shipping_method,
        )
        if not placed.ok:
            return CheckoutResult.from_order_result(placed)

        return self._open_payment_session(placed.order, return_origin)

    def request_payment(self, order_id, line_items=None, return_origin=None) -> CheckoutResult:
        """Open a payment session for an existing pending order.

        The session always charges what the order records. Lines sent by the
        client, if any, must describe the same products, quantities and prices.
        """
        order = self.get_order(order_id)
        if order is None:
            return CheckoutResult.failure(ErrorKind.NOT_FOUND, f"Order not found: {order_id}")
        if OrderStatus(order.status) != OrderStatus.PENDING:
            return CheckoutResult.failure(ErrorKind.VALIDATION, f"Order {order_id} is {order.status}", order)

        if line_items:
            try:
                requested = normalize_line_items(line_items)
            except ValidationError as exc:
                return CheckoutResult.failure(ErrorKind.VALIDATION, describe(exc), order)
            if _priced_lines(requested) != _priced_lines(order.line_items()):
                logger.warning("Payment requested for lines that differ from the order", order_id=str(order.id))
                return CheckoutResult.failure(ErrorKind.VALIDATION, "Line items do not match the order", order)

        return self._open_payment_session(order, return_origin)

    def _open_payment_session(self, order: Order, return_origin=None) -> CheckoutResult:
        session = create_checkout_session(
            order_charges(order),
            str(order.id),
            return_origin=return_origin,
            gateway=self.gateway,
        )
        if not session.success:
            return CheckoutResult.failure(
                ErrorKind.DEPENDENCY,
                f"Payment session could not be created: {session.failure_reason}",
                order,
            )

        current_domain.process(
            AttachCheckoutSession(order_id=str(order.id), payment_session_id=session.session_id),
            asynchronous=False,
        )
        return CheckoutResult(
            ok=True,
            order=current_domain.repository_for(Order).get(order.id),
            session_id=session.session_id,
            url=session.url,
        )


# ---------------------------------------------------------------------------
# Request normalization
# ---------------------------------------------------------------------------
def _priced_lines(items: list[dict]) -> dict[str, tuple[int, int]]:
    return {
        str(item["product_id"]): (int(item["quantity"]), to_minor_units(item["unit_price"]))
        for item in items
    }


def normalize_line_items(line_items) -> list[dict]:
    """Validate line items and merge duplicate products, keeping first-seen order.

    Accepts `price` for `unit_price` and `id` for `product_id`.
    """
    if not line_items:
        raise ValidationError({"line_items": ["Cart is empty"]})

    merged: dict[str, dict] = {}
    for index, raw in enumerate(line_items):
        product_id = raw.get("product_id") or raw.get("id")
        unit_price = raw.get("unit_price", raw.get("price"))
        quantity = raw.get("quantity", raw.get("qty"))
        if not product_id:
            raise ValidationError({"line_items": [f"Line item {index + 1} has no product"]})
        try:
            unit_price = None if unit_price is None else float(unit_price)
            quantity = None if quantity is None else int(quantity)
        except (TypeError, ValueError):
            raise ValidationError({"line_items": [f"Line item {index + 1} has a non-numeric price or quantity"]})
        if unit_price is None or unit_price < 0:
            raise ValidationError({"line_items": [f"Line item {index + 1} has an invalid price"]})
        if quantity is None or quantity < 1:
            raise ValidationError({"line_items": [f"Line item {index + 1} needs a quantity of at least 1"]})

        product_id = str(product_id)
        if product_id in merged:
            merged[product_id]["quantity"] += quantity
            continue
        merged[product_id] = {
            "product_id": product_id,
            "name": raw.get("name"),
            "unit_price": unit_price,
            "quantity": quantity,
            "image_url": raw.get("image_url"),
        }
    return list(merged.values())


def normalize_address(shipping_address) -> dict:
    if isinstance(shipping_address, ShippingAddress):
        shipping_address = shipping_address.to_dict()
    if not shipping_address:
        raise ValidationError({"shipping_address": ["Shipping address is required"]})

    missing = [field for field in REQUIRED_ADDRESS_FIELDS if not shipping_address.get(field)]
    if missing:
        raise ValidationError({"shipping_address": [f"Missing address fields: {', '.join(missing)}"]})
    return {field: shipping_address.get(field) for field in ADDRESS_FIELDS}
