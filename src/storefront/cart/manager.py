"""Per-session cart manager.

One `CartManager` lives for the duration of a user session. It starts out
working against the guest cart for the session, switches to the customer's
cart on sign-in (reconciling the two), and is the single object that UI,
CLI or test code passes around instead of reaching for shared cart state.
"""

import structlog
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from storefront.cart.management import ClearCart, CreateCart
from storefront.cart.reconciliation import customer_cart_for, reconcile_carts
from storefront.order.pricing import ShippingMethod
from storefront.order.results import CheckoutResult
from storefront.order.service import OrderService
from storefront.shared.results import ErrorKind

logger = structlog.get_logger(__name__)


class CartManager:
    def __init__(self, session_id: str, customer_id: str | None = None, order_service: OrderService | None = None):
        self.session_id = session_id
        self.customer_id = customer_id
        self.order_service = order_service or OrderService()
        self._cart_id: str | None = None

    # -------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------
    @property
    def signed_in(self) -> bool:
        return self.customer_id is not None

    def sign_in(self, customer_id: str) -> ShoppingCart:
        """Bind the session to `customer_id` and fold the guest cart into theirs."""
        cart = reconcile_carts(customer_id, self.session_id)
        self.customer_id = str(customer_id)
        self._cart_id = str(cart.id)
        logger.info("Session signed in", session_id=self.session_id, customer_id=self.customer_id)
        return cart

    def sign_out(self) -> None:
        """Drop the customer binding; the session falls back to its guest cart."""
        logger.info("Session signed out", session_id=self.session_id, customer_id=self.customer_id)
        self.customer_id = None
        self._cart_id = None

    # -------------------------------------------------------------------
    # Cart access
    # -------------------------------------------------------------------
    @property
    def cart_id(self) -> str:
        if self._cart_id is None:
            if self.signed_in:
                cart = customer_cart_for(self.customer_id)
                self._cart_id = str(cart.id)
            else:
                repo = current_domain.repository_for(ShoppingCart)
                cart = repo.find_by_session(self.session_id)
                if cart is None:
                    self._cart_id = current_domain.process(
                        CreateCart(session_id=self.session_id), asynchronous=False
                    )
                else:
                    self._cart_id = str(cart.id)
        return self._cart_id

    @property
    def cart(self) -> ShoppingCart:
        return current_domain.repository_for(ShoppingCart).get(self.cart_id)

    def items(self) -> list[dict]:
        return self.cart.snapshot()

    def total(self) -> float:
        return self.cart.total

    def add(self, product_id, quantity: int = 1) -> None:
        current_domain.process(
            AddToCart(cart_id=self.cart_id, product_id=product_id, quantity=quantity),
            asynchronous=False,
        )

    def update_quantity(self, product_id, quantity: int) -> None:
        current_domain.process(
            UpdateCartQuantity(cart_id=self.cart_id, product_id=product_id, new_quantity=quantity),
            asynchronous=False,
        )

    def remove(self, product_id) -> None:
        current_domain.process(
            RemoveFromCart(cart_id=self.cart_id, product_id=product_id),
            asynchronous=False,
        )

    def clear(self) -> None:
        current_domain.process(ClearCart(cart_id=self.cart_id), asynchronous=False)

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def checkout(
        self,
        customer_email: str,
        shipping_address: dict,
        shipping_method: str = ShippingMethod.STANDARD.value,
        return_origin: str | None = None,
    ) -> CheckoutResult:
        """Place an order for the cart and open a payment session for it.

        The cart is emptied only when both steps succeed.
        """
        if not self.signed_in:
            return CheckoutResult.failure(ErrorKind.VALIDATION, "Sign in to check out")

        result = self.order_service.checkout(
            customer_id=self.customer_id,
            customer_email=customer_email,
            cart_id=self.cart_id,
            shipping_address=shipping_address,
            shipping_method=shipping_method,
            return_origin=return_origin,
        )
        if result.ok:
            self.clear()
        return result
