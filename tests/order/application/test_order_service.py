"""OrderService: placing orders, committing stock and checking out."""

import pytest
from protean import current_domain
from storefront.cart.items import AddToCart
from storefront.cart.management import CreateCart
from storefront.catalogue.product import Product
from storefront.order.order import Order, OrderStatus
from storefront.order.service import OrderService
from storefront.payments.gateway import get_gateway
from storefront.shared.results import ErrorKind


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


def _order_count():
    return len(current_domain.repository_for(Order)._dao.query.all().items)


def _place(service, shipping_address, line_items, **kwargs):
    kwargs.setdefault("customer_id", "cust-1")
    kwargs.setdefault("customer_email", "sam@example.com")
    return service.place_order(line_items=line_items, shipping_address=shipping_address, **kwargs)


def _customer_cart(lines, customer_id="cust-1"):
    cart_id = current_domain.process(CreateCart(customer_id=customer_id), asynchronous=False)
    for product_id, quantity in lines:
        current_domain.process(
            AddToCart(cart_id=cart_id, product_id=product_id, quantity=quantity),
            asynchronous=False,
        )
    return cart_id


@pytest.fixture()
def service():
    return OrderService()


class TestPlaceOrder:
    def test_order_is_priced_and_stock_taken(self, service, make_product, shipping_address):
        make_product(product_id="P1", price=10.0, stock=5)

        result = _place(service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 2}])

        assert result.ok is True
        order = result.order
        assert order.status == OrderStatus.PENDING.value
        assert order.subtotal == 20.0
        assert order.tax_total == 1.40
        assert order.total_amount == 21.40
        assert order.items[0].name == "Test Product"
        assert _stock("P1") == 3

    def test_non_numeric_price_is_a_validation_error(self, service, make_product, shipping_address):
        make_product(product_id="P1", price=10.0, stock=5)

        result = _place(service, shipping_address, [{"product_id": "P1", "unit_price": "abc", "quantity": 1}])

        assert result.error_kind == ErrorKind.VALIDATION
        assert "non-numeric" in result.message
        assert _order_count() == 0

    def test_insufficient_stock_rejects_without_side_effects(self, service, make_product, shipping_address):
        make_product(product_id="P1", price=10.0, stock=2)

        result = _place(service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 10}])

        assert result.ok is False
        assert result.error_kind == ErrorKind.VALIDATION
        assert "P1" in result.message
        assert _order_count() == 0
        assert _stock("P1") == 2

    def test_unknown_product_rejected(self, service, shipping_address):
        result = _place(service, shipping_address, [{"product_id": "ghost", "unit_price": 1.0, "quantity": 1}])
        assert result.error_kind == ErrorKind.VALIDATION
        assert "Product not found: ghost" in result.message

    def test_empty_line_items_rejected(self, service, shipping_address):
        result = _place(service, shipping_address, [])
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.message == "Cart is empty"

    def test_missing_address_rejected(self, service, make_product):
        make_product(product_id="P1")
        result = _place(service, None, [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}])
        assert result.error_kind == ErrorKind.VALIDATION
        assert _order_count() == 0

    def test_anonymous_customer_rejected(self, service, make_product, shipping_address):
        make_product(product_id="P1")
        result = _place(
            service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}], customer_id=None
        )
        assert result.error_kind == ErrorKind.VALIDATION

    def test_total_mismatch_rejected(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)

        result = _place(
            service,
            shipping_address,
            [{"product_id": "P1", "unit_price": 10.0, "quantity": 2}],
            total_amount=20.0,
        )

        assert result.error_kind == ErrorKind.VALIDATION
        assert "expected 21.40, got 20.00" in result.message
        assert _stock("P1") == 5

    def test_matching_total_accepted(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)
        result = _place(
            service,
            shipping_address,
            [{"product_id": "P1", "unit_price": 10.0, "quantity": 2}],
            total_amount=21.40,
        )
        assert result.ok is True

    def test_express_shipping(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)
        result = _place(
            service,
            shipping_address,
            [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}],
            shipping_method="express",
        )
        assert result.order.shipping_cost == 29.99
        assert result.order.total_amount == 40.69

    def test_duplicate_lines_are_merged_before_stock_check(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=3)

        result = _place(
            service,
            shipping_address,
            [
                {"product_id": "P1", "unit_price": 10.0, "quantity": 2},
                {"product_id": "P1", "unit_price": 10.0, "quantity": 2},
            ],
        )

        assert result.error_kind == ErrorKind.VALIDATION
        assert _stock("P1") == 3

    def test_store_failure_is_a_dependency_error(self, service, make_product, shipping_address, monkeypatch):
        make_product(product_id="P1")

        def broken_create(*args, **kwargs):
            raise ConnectionError("database unavailable")

        monkeypatch.setattr(Order, "create", broken_create)
        result = _place(service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}])

        assert result.error_kind == ErrorKind.DEPENDENCY
        assert _stock("P1") == 5


class TestPartialStockFailure:
    def test_order_left_pending_and_retry_completes_stock(
        self, service, make_product, shipping_address, monkeypatch
    ):
        make_product(product_id="P1", stock=5)
        make_product(product_id="P2", stock=1)
        # Stock for P2 disappears between the pre-check and the decrement
        monkeypatch.setattr(OrderService, "_check_stock", lambda self, items: None)

        result = _place(
            service,
            shipping_address,
            [
                {"product_id": "P1", "name": "One", "unit_price": 10.0, "quantity": 2},
                {"product_id": "P2", "name": "Two", "unit_price": 5.0, "quantity": 3},
            ],
        )

        assert result.ok is False
        assert result.error_kind == ErrorKind.PARTIAL_FAILURE
        assert result.order.status == OrderStatus.PENDING.value
        assert "P2" in result.message
        assert _stock("P1") == 3
        assert _stock("P2") == 1

        product = current_domain.repository_for(Product).get("P2")
        product.restock(5)
        current_domain.repository_for(Product).add(product)

        retried = service.commit_stock(result.order.id)

        assert retried.ok is True
        assert _stock("P1") == 3
        assert _stock("P2") == 3

    def test_commit_stock_unknown_order(self, service):
        result = service.commit_stock("nope")
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_commit_stock_refused_for_failed_order(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)
        placed = _place(service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}])
        service.fail_order(placed.order.id, "Customer abandoned checkout")

        result = service.commit_stock(placed.order.id)

        assert result.error_kind == ErrorKind.VALIDATION


class TestFailOrder:
    def test_pending_order_fails(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)
        placed = _place(service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}])

        result = service.fail_order(placed.order.id, "Customer abandoned checkout")

        assert result.ok is True
        assert result.order.status == OrderStatus.FAILED.value
        assert result.order.failure_reason == "Customer abandoned checkout"

    def test_failing_twice_is_rejected(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)
        placed = _place(service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}])
        service.fail_order(placed.order.id, "First")

        result = service.fail_order(placed.order.id, "Second")

        assert result.error_kind == ErrorKind.VALIDATION

    def test_unknown_order(self, service):
        assert service.fail_order("nope", "reason").error_kind == ErrorKind.NOT_FOUND


class TestCheckout:
    def test_checkout_opens_payment_session(self, service, make_product, shipping_address):
        make_product(product_id="P1", price=10.0, stock=5)
        cart_id = _customer_cart([("P1", 2)])

        result = service.checkout("cust-1", "sam@example.com", cart_id, shipping_address)

        assert result.ok is True
        assert result.session_id.startswith("cs_fake_")
        assert result.order.payment_session_id == result.session_id
        assert result.order.status == OrderStatus.PENDING.value
        call = get_gateway().calls[-1]
        assert call["metadata"] == {"order_id": str(result.order.id)}
        assert call["line_items"][0]["price_data"]["unit_amount"] == 1000

    def test_checkout_charges_the_order_total(self, service, make_product, shipping_address):
        make_product(product_id="P1", name="Lamp", price=100.0, stock=5)
        cart_id = _customer_cart([("P1", 1)])

        result = service.checkout("cust-1", "sam@example.com", cart_id, shipping_address, shipping_method="express")

        assert result.order.total_amount == 136.99
        call = get_gateway().calls[-1]
        charged = sum(line["price_data"]["unit_amount"] * line["quantity"] for line in call["line_items"])
        assert charged == call["amount_total"] == 13699

    def test_checkout_uses_return_origin(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)
        cart_id = _customer_cart([("P1", 1)])

        result = service.checkout(
            "cust-1", "sam@example.com", cart_id, shipping_address, return_origin="https://shop.example.com/"
        )

        call = get_gateway().calls[-1]
        assert call["success_url"] == f"https://shop.example.com/order-success?orderId={result.order.id}"
        assert call["cancel_url"] == "https://shop.example.com/checkout"

    def test_gateway_failure_is_a_dependency_error(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)
        cart_id = _customer_cart([("P1", 1)])
        get_gateway().configure(should_succeed=False, failure_reason="Card network down")

        result = service.checkout("cust-1", "sam@example.com", cart_id, shipping_address)

        assert result.ok is False
        assert result.error_kind == ErrorKind.DEPENDENCY
        assert "Card network down" in result.message
        assert result.order.status == OrderStatus.PENDING.value
        assert result.order.payment_session_id is None

    def test_unknown_cart(self, service, shipping_address):
        result = service.checkout("cust-1", "sam@example.com", "missing-cart", shipping_address)
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_someone_elses_cart(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)
        cart_id = _customer_cart([("P1", 1)], customer_id="cust-2")

        result = service.checkout("cust-1", "sam@example.com", cart_id, shipping_address)

        assert result.error_kind == ErrorKind.VALIDATION
        assert _stock("P1") == 5

    def test_empty_cart(self, service, shipping_address):
        cart_id = _customer_cart([])
        result = service.checkout("cust-1", "sam@example.com", cart_id, shipping_address)
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.message == "Cart is empty"

    def test_orders_for_customer_newest_first(self, service, make_product, shipping_address):
        make_product(product_id="P1", stock=5)
        first = _place(service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}])
        second = _place(service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}])
        _place(
            service,
            shipping_address,
            [{"product_id": "P1", "unit_price": 10.0, "quantity": 1}],
            customer_id="cust-2",
        )

        orders = service.orders_for_customer("cust-1")

        assert [str(o.id) for o in orders] == [str(second.order.id), str(first.order.id)]


class TestRequestPayment:
    @pytest.fixture()
    def order(self, service, make_product, shipping_address):
        make_product(product_id="P1", price=10.0, stock=5)
        return _place(service, shipping_address, [{"product_id": "P1", "unit_price": 10.0, "quantity": 2}]).order

    def test_session_priced_from_stored_order(self, service, order):
        result = service.request_payment(order.id)

        assert result.ok is True
        assert result.order.payment_session_id == result.session_id
        assert get_gateway().calls[-1]["amount_total"] == 2140

    def test_matching_client_lines_are_accepted(self, service, order):
        result = service.request_payment(
            order.id,
            line_items=[{"product_id": "P1", "name": "Widget", "unit_price": 10.0, "quantity": 2}],
        )
        assert result.ok is True

    @pytest.mark.parametrize(
        "line",
        [
            {"product_id": "P1", "unit_price": 0.01, "quantity": 2},
            {"product_id": "P1", "unit_price": 10.0, "quantity": 1},
            {"product_id": "P2", "unit_price": 10.0, "quantity": 2},
        ],
    )
    def test_lines_differing_from_order_are_rejected(self, service, order, line):
        result = service.request_payment(order.id, line_items=[line])

        assert result.error_kind == ErrorKind.VALIDATION
        assert get_gateway().calls == []

    def test_only_pending_orders(self, service, order):
        service.fail_order(order.id, "Abandoned")
        assert service.request_payment(order.id).error_kind == ErrorKind.VALIDATION

    def test_unknown_order(self, service):
        assert service.request_payment("missing").error_kind == ErrorKind.NOT_FOUND
