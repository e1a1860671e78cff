"""Application tests for inventory management and stock decrement commands."""

import threading

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.catalogue.management import AddProduct, RemoveProduct, RestockProduct, UpdateProduct
from storefront.catalogue.product import Product
from storefront.catalogue.stock import DecrementStock
from storefront.shared.locks import product_stock_locks


class TestInventoryCommands:
    def test_add_product_persists(self):
        product_id = current_domain.process(
            AddProduct(name="Canvas Tote", price=24.0, stock=40, category="Bags"),
            asynchronous=False,
        )
        product = current_domain.repository_for(Product).get(product_id)
        assert product.name == "Canvas Tote"
        assert product.stock == 40

    def test_add_product_with_explicit_id(self, make_product):
        product_id = make_product(product_id="P1")
        assert product_id == "P1"
        assert current_domain.repository_for(Product).get("P1").name == "Test Product"

    def test_update_product(self, make_product):
        product_id = make_product(price=10.0)
        current_domain.process(UpdateProduct(product_id=product_id, price=12.5), asynchronous=False)
        product = current_domain.repository_for(Product).get(product_id)
        assert product.price == 12.5
        assert product.name == "Test Product"

    def test_remove_product(self, make_product):
        product_id = make_product()
        current_domain.process(RemoveProduct(product_id=product_id), asynchronous=False)
        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(Product).get(product_id)

    def test_restock_product(self, make_product):
        product_id = make_product(stock=1)
        current_domain.process(RestockProduct(product_id=product_id, quantity=9), asynchronous=False)
        assert current_domain.repository_for(Product).get(product_id).stock == 10


class TestListProducts:
    def test_lists_sorted_by_name(self, make_product):
        make_product(name="beta")
        make_product(name="Alpha")
        names = [p.name for p in current_domain.repository_for(Product).list_products()]
        assert names == ["Alpha", "beta"]

    def test_filters_by_category_and_subcategory(self, make_product):
        make_product(name="Tote", category="Bags", subcategory="Totes")
        make_product(name="Backpack", category="Bags", subcategory="Backpacks")
        make_product(name="Shirt", category="Apparel")

        repo = current_domain.repository_for(Product)
        assert {p.name for p in repo.list_products(category="Bags")} == {"Tote", "Backpack"}
        assert [p.name for p in repo.list_products(category="Bags", subcategory="Totes")] == ["Tote"]


class TestDecrementStockCommand:
    def test_decrement_persists(self, make_product):
        product_id = make_product(stock=5)
        applied = current_domain.process(
            DecrementStock(product_id=product_id, order_id="ord-1", quantity=2),
            asynchronous=False,
        )
        assert applied is True
        assert current_domain.repository_for(Product).get(product_id).stock == 3

    def test_retry_for_same_order_is_noop(self, make_product):
        product_id = make_product(stock=5)
        command = DecrementStock(product_id=product_id, order_id="ord-1", quantity=2)
        current_domain.process(command, asynchronous=False)
        applied = current_domain.process(command, asynchronous=False)
        assert applied is False
        assert current_domain.repository_for(Product).get(product_id).stock == 3

    def test_insufficient_stock_leaves_stock_untouched(self, make_product):
        product_id = make_product(stock=2)
        with pytest.raises(ValidationError):
            current_domain.process(
                DecrementStock(product_id=product_id, order_id="ord-1", quantity=3),
                asynchronous=False,
            )
        assert current_domain.repository_for(Product).get(product_id).stock == 2

    def test_concurrent_decrements_never_oversell(self, make_product):
        from storefront.domain import storefront

        product_id = make_product(stock=5)
        outcomes = []
        outcomes_lock = threading.Lock()

        def buy(order_number):
            with storefront.domain_context():
                try:
                    with product_stock_locks.hold(product_id):
                        current_domain.process(
                            DecrementStock(product_id=product_id, order_id=f"ord-{order_number}", quantity=1),
                            asynchronous=False,
                        )
                    result = "ok"
                except ValidationError:
                    result = "rejected"
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=buy, args=(n,)) for n in range(12)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("ok") == 5
        assert outcomes.count("rejected") == 7
        assert current_domain.repository_for(Product).get(product_id).stock == 0
