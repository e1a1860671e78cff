"""Tests for the Order aggregate and its status transitions."""

import pytest
from protean.exceptions import ValidationError
from storefront.order.events import (
    CheckoutSessionAttached,
    OrderCompleted,
    OrderConfirmationSent,
    OrderFailed,
    OrderPlaced,
)
from storefront.order.order import Order, OrderStatus
from storefront.order.pricing import OrderPricing, price_order

ADDRESS = {
    "full_name": "Sam Rivera",
    "street": "12 Harbour Road",
    "city": "Portland",
    "state": "OR",
    "postal_code": "97201",
    "country": "US",
    "phone": None,
}


def _items():
    return [
        {"product_id": "P1", "name": "Widget", "unit_price": 10.0, "quantity": 2, "image_url": None},
        {"product_id": "P2", "name": "Gadget", "unit_price": 5.0, "quantity": 1, "image_url": None},
    ]


def _make_order(**overrides):
    items = overrides.pop("items_data", _items())
    defaults = dict(
        customer_id="cust-1",
        items_data=items,
        shipping_address=ADDRESS,
        pricing=price_order(items),
        customer_email="sam@example.com",
    )
    defaults.update(overrides)
    return Order.create(**defaults)


class TestOrderCreation:
    def test_new_order_is_pending(self):
        order = _make_order()
        assert order.status == OrderStatus.PENDING.value
        assert order.confirmation_sent is False

    def test_amounts_come_from_pricing(self):
        order = _make_order()
        assert order.subtotal == 25.0
        assert order.tax_total == 1.75
        assert order.total_amount == 26.75

    def test_lines_are_snapshotted(self):
        order = _make_order()
        assert [line["name"] for line in order.line_items()] == ["Widget", "Gadget"]
        assert order.shipping_address.city == "Portland"

    def test_placed_event(self):
        order = _make_order()
        event = next(e for e in order._events if isinstance(e, OrderPlaced))
        assert event.order_id == str(order.id)
        assert event.total_amount == 26.75

    def test_order_without_items_rejected(self):
        with pytest.raises(ValidationError):
            _make_order(items_data=[], pricing=OrderPricing(0.0, 0.0, 0.0, 0.0))

    def test_total_must_add_up(self):
        with pytest.raises(ValidationError):
            _make_order(pricing=OrderPricing(subtotal=25.0, shipping_cost=0.0, tax_total=1.75, total_amount=30.0))

    def test_address_requires_street(self):
        with pytest.raises(ValidationError):
            _make_order(shipping_address={**ADDRESS, "street": None})


class TestCheckoutSession:
    def test_attach_session(self):
        order = _make_order()
        order.attach_checkout_session("cs_test_1")
        assert order.payment_session_id == "cs_test_1"
        assert any(isinstance(e, CheckoutSessionAttached) for e in order._events)

    def test_completed_order_cannot_get_new_session(self):
        order = _make_order()
        order.complete("pi_1")
        with pytest.raises(ValidationError):
            order.attach_checkout_session("cs_test_2")


class TestCompletion:
    def test_complete(self):
        order = _make_order()
        assert order.complete("pi_1") is True
        assert order.status == OrderStatus.COMPLETED.value
        assert order.payment_reference == "pi_1"
        assert order.completed_at is not None
        assert any(isinstance(e, OrderCompleted) for e in order._events)

    def test_completing_twice_is_a_noop(self):
        order = _make_order()
        order.complete("pi_1")
        assert order.complete("pi_2") is False
        assert order.payment_reference == "pi_1"
        assert len([e for e in order._events if isinstance(e, OrderCompleted)]) == 1

    def test_failed_order_cannot_complete(self):
        order = _make_order()
        order.fail("Abandoned")
        with pytest.raises(ValidationError):
            order.complete("pi_1")


class TestFailure:
    def test_fail(self):
        order = _make_order()
        order.fail("Stock unavailable")
        assert order.status == OrderStatus.FAILED.value
        assert order.failure_reason == "Stock unavailable"
        assert any(isinstance(e, OrderFailed) for e in order._events)

    def test_completed_order_cannot_fail(self):
        order = _make_order()
        order.complete("pi_1")
        with pytest.raises(ValidationError):
            order.fail("Too late")


class TestConfirmation:
    def test_mark_confirmation_sent_once(self):
        order = _make_order()
        assert order.mark_confirmation_sent("notif-1") is True
        assert order.mark_confirmation_sent("notif-2") is False
        assert order.confirmation_sent is True
        assert len([e for e in order._events if isinstance(e, OrderConfirmationSent)]) == 1


class TestSerialization:
    def test_to_dict(self):
        order = _make_order()
        data = order.to_dict()
        assert data["status"] == "Pending"
        assert data["shipping_address"]["postal_code"] == "97201"
        assert len(data["items"]) == 2
        assert data["completed_at"] is None
