"""Repository for the Product aggregate."""

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.repository(part_of=Product)
class ProductRepository:
    def list_products(self, category: str | None = None, subcategory: str | None = None) -> list[Product]:
        """All products, optionally narrowed by category and subcategory, sorted by name."""
        filters = {}
        if category:
            filters["category"] = category
        if subcategory:
            filters["subcategory"] = subcategory

        query = self._dao.query
        if filters:
            query = query.filter(**filters)
        products = query.all().items
        return sorted(products, key=lambda product: (product.name or "").lower())
