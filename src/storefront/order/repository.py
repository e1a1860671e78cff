"""Repository for the Order aggregate."""

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.repository(part_of=Order)
class OrderRepository:
    def orders_for_customer(self, customer_id) -> list[Order]:
        """A customer's order history, newest first."""
        orders = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return sorted(orders, key=lambda order: order.created_at, reverse=True)
