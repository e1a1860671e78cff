"""Storefront bounded context — Catalogue, Shopping Cart, Orders, Payments and Notifications.

Handles inventory for the product catalogue, guest and customer carts with
reconciliation on sign-in, the checkout flow that turns a cart into an order,
hosted payment sessions, and the order confirmation sent once payment is
confirmed by the gateway.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
