"""Shared BDD fixtures and step definitions for the storefront workflow."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from storefront.cart.manager import CartManager
from storefront.catalogue.management import AddProduct
from storefront.catalogue.product import Product


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
class Sessions(dict):
    """Cart managers by session name, created on first mention."""

    def __missing__(self, name):
        manager = CartManager(session_id=f"session-{name}")
        self[name] = manager
        return manager


@pytest.fixture()
def sessions():
    return Sessions()


@pytest.fixture()
def outcome():
    """Container for the result of the last When step."""
    return {"result": None}


@pytest.fixture()
def address():
    return {
        "full_name": "Sam Rivera",
        "street": "12 Harbour Road",
        "city": "Portland",
        "state": "OR",
        "postal_code": "97201",
        "country": "US",
    }


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{product_id}" priced {price:f} with {stock:d} in stock'))
def product_in_catalogue(product_id, price, stock):
    current_domain.process(
        AddProduct(product_id=product_id, name=f"Product {product_id}", price=price, stock=stock),
        asynchronous=False,
    )


@given(parsers.cfparse('the guest session "{name}" has {quantity:d} of "{product_id}" in the cart'))
def guest_cart_line(sessions, name, quantity, product_id):
    sessions[name].add(product_id, quantity)


@given(parsers.cfparse('customer "{customer_id}" has {quantity:d} of "{product_id}" in their saved cart'))
def customer_cart_line(sessions, customer_id, quantity, product_id):
    manager = CartManager(session_id=f"saved-{customer_id}", customer_id=customer_id)
    manager.add(product_id, quantity)


@given(parsers.cfparse('the guest session "{name}" signs in as "{customer_id}"'))
def signed_in_session(sessions, name, customer_id):
    sessions[name].sign_in(customer_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{product_id}" has {stock:d} in stock'))
def product_stock_is(product_id, stock):
    assert current_domain.repository_for(Product).get(product_id).stock == stock


@then(parsers.cfparse('the cart of session "{name}" holds {quantity:d} of "{product_id}"'))
def session_cart_holds(sessions, name, quantity, product_id):
    assert sessions[name].cart.quantity_of(product_id) == quantity


@then(parsers.cfparse('the cart of session "{name}" is empty'))
def session_cart_empty(sessions, name):
    assert sessions[name].items() == []
