"""Repository for the ShoppingCart aggregate."""

from storefront.cart.cart import ShoppingCart
from storefront.domain import storefront


@storefront.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    """Lookups for the remote (customer) and local (guest session) carts."""

    def find_by_customer(self, customer_id) -> ShoppingCart | None:
        carts = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return carts[0] if carts else None

    def find_by_session(self, session_id) -> ShoppingCart | None:
        carts = self._dao.query.filter(session_id=str(session_id)).all().items
        guest_carts = [cart for cart in carts if not cart.customer_id]
        return guest_carts[0] if guest_carts else None
