import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers
from storefront.api import cart_router, checkout_router, order_router, payment_router, product_router


@pytest.fixture()
def client():
    app = FastAPI()
    register_exception_handlers(app)
    for router in (product_router, cart_router, order_router, checkout_router, payment_router):
        app.include_router(router)
    return TestClient(app)


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
