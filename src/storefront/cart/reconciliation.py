"""Cart reconciliation — merge a guest's cart into the customer's cart on sign-in.

Lines present in both carts have their quantities summed; lines present in
only one are carried over. The merged cart becomes the customer's cart and
the guest cart is emptied.

The whole operation is one critical section per customer, and the merge
itself is keyed by a token built from the guest cart's id and revision. A
duplicate sign-in event therefore either waits for the first merge and then
finds an empty guest cart, or replays a token the customer cart has already
absorbed. Either way quantities are never counted twice.
"""

import json

import structlog
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.management import ClearCart, CreateCart, MergeGuestCart
from storefront.shared.locks import cart_reconciliation_locks

logger = structlog.get_logger(__name__)


def merge_token_for(guest_cart: ShoppingCart) -> str:
    return f"{guest_cart.id}:{guest_cart.revision or 0}"


def customer_cart_for(customer_id) -> ShoppingCart:
    """The customer's cart, created on first use."""
    repo = current_domain.repository_for(ShoppingCart)
    cart = repo.find_by_customer(customer_id)
    if cart is None:
        cart_id = current_domain.process(CreateCart(customer_id=str(customer_id)), asynchronous=False)
        cart = repo.get(cart_id)
    return cart


def reconcile_carts(customer_id, session_id=None) -> ShoppingCart:
    """Fold the guest cart for `session_id` into the cart of `customer_id`.

    Returns the customer's cart after the merge. Storage errors propagate.
    """
    with cart_reconciliation_locks.hold(customer_id):
        repo = current_domain.repository_for(ShoppingCart)
        customer_cart = customer_cart_for(customer_id)

        guest_cart = repo.find_by_session(session_id) if session_id else None
        if guest_cart is None or not guest_cart.items:
            logger.debug(
                "Nothing to reconcile",
                customer_id=str(customer_id),
                session_id=session_id,
            )
            return customer_cart

        merge_token = merge_token_for(guest_cart)
        merged = current_domain.process(
            MergeGuestCart(
                cart_id=str(customer_cart.id),
                source_cart_id=str(guest_cart.id),
                guest_cart_items=json.dumps(guest_cart.snapshot()),
                merge_token=merge_token,
            ),
            asynchronous=False,
        )

        # Runs even for an already-applied token, so an earlier attempt
        # that merged but failed to clear the guest cart is completed here.
        current_domain.process(ClearCart(cart_id=str(guest_cart.id)), asynchronous=False)

        logger.info(
            "Guest cart reconciled" if merged else "Guest cart already merged",
            customer_id=str(customer_id),
            cart_id=str(customer_cart.id),
            guest_cart_id=str(guest_cart.id),
            merge_token=merge_token,
            guest_lines=len(guest_cart.items),
        )
        return repo.get(customer_cart.id)
