import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Selects the configuration overlay before the domain is imported.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed, monkeypatch):
    """Run every test inside the domain context, with clean data and fake adapters."""
    from protean import current_domain
    from storefront.notifications.channel import reset_channels
    from storefront.payments.gateway import reset_gateway
    from storefront.utils.db import reset_data

    for name in (
        "STRIPE_SECRET_KEY",
        "STRIPE_WEBHOOK_SECRET",
        "RESEND_API_KEY",
        "STOREFRONT_TAX_RATE",
        "STOREFRONT_CURRENCY",
        "STOREFRONT_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)

    reset_gateway()
    reset_channels()
    with storefront_bed.domain_context():
        yield
        reset_data(current_domain)
    reset_gateway()
    reset_channels()


# ---------------------------------------------------------------------------
# Shared data helpers
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product():
    """Factory: add a product to the catalogue and return its id."""
    from protean import current_domain
    from storefront.catalogue.management import AddProduct

    def _make(product_id=None, name="Test Product", price=10.0, stock=5, **extra):
        return current_domain.process(
            AddProduct(product_id=product_id, name=name, price=price, stock=stock, **extra),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def shipping_address():
    return {
        "full_name": "Sam Rivera",
        "street": "12 Harbour Road",
        "city": "Portland",
        "state": "OR",
        "postal_code": "97201",
        "country": "US",
        "phone": "+1 503 555 0100",
    }
