"""Inventory management — commands and handler for the admin product CRUD."""

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.command(part_of="Product")
class AddProduct:
    product_id: Identifier()  # Optional: generated when absent
    name: String(required=True, max_length=255, sanitize=False)
    description: Text()
    price: Float(required=True, min_value=0.0)
    stock: Integer(default=0, min_value=0)
    image_url: String(max_length=1000)
    category: String(max_length=100)
    subcategory: String(max_length=100)


@storefront.command(part_of="Product")
class UpdateProduct:
    product_id: Identifier(required=True)
    name: String(max_length=255, sanitize=False)
    description: Text()
    price: Float(min_value=0.0)
    stock: Integer(min_value=0)
    image_url: String(max_length=1000)
    category: String(max_length=100)
    subcategory: String(max_length=100)


@storefront.command(part_of="Product")
class RemoveProduct:
    product_id: Identifier(required=True)


@storefront.command(part_of="Product")
class RestockProduct:
    product_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1)


@storefront.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(AddProduct)
    def add_product(self, command):
        product = Product.create(
            product_id=command.product_id,
            name=command.name,
            description=command.description,
            price=command.price,
            stock=command.stock or 0,
            image_url=command.image_url,
            category=command.category,
            subcategory=command.subcategory,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(UpdateProduct)
    def update_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.update_details(
            name=command.name,
            description=command.description,
            price=command.price,
            stock=command.stock,
            image_url=command.image_url,
            category=command.category,
            subcategory=command.subcategory,
        )
        repo.add(product)

    @handle(RemoveProduct)
    def remove_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        repo._dao.delete(product)

    @handle(RestockProduct)
    def restock_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.restock(command.quantity)
        repo.add(product)
