import os

import pytest


@pytest.fixture(scope="session")
def _marketplace_domain(request):
    """Initialize the marketplace domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from marketplace.domain import marketplace

    marketplace.init()
    return marketplace


@pytest.fixture(scope="session", autouse=True)
def setup_db(_marketplace_domain):
    from marketplace.utils.db import drop_db, setup_db

    setup_db(_marketplace_domain)

    yield

    drop_db(_marketplace_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_marketplace_domain):
    """Push domain context before each test, cleanup after."""
    from marketplace.notifications import reset_notifier

    ctx = _marketplace_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    reset_notifier()
    ctx.pop()


@pytest.fixture()
def notifier():
    from marketplace.notifications import get_notifier

    return get_notifier()


# ---------------------------------------------------------------------------
# Shared builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def address():
    return {
        "street": "12 Rue des Palmiers",
        "city": "Dakar",
        "region": "Dakar",
        "postal_code": "10200",
        "latitude": 14.69,
        "longitude": -17.44,
    }


@pytest.fixture()
def make_product():
    """Return a builder that lists a product through the command handler and returns its id."""
    from protean import current_domain

    from marketplace.catalogue.listing import ListProduct

    def _make(producer_id="farm-001", name="Tomatoes", price=2.5, stock=10, unit="kg"):
        return current_domain.process(
            ListProduct(producer_id=producer_id, name=name, price=price, stock=stock, unit=unit),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def make_order(address):
    """Return a builder that places an order through the command handler and returns its id."""
    import json

    from protean import current_domain

    from marketplace.order.creation import PlaceOrder

    def _make(
        items,
        consumer_id="consumer-001",
        payment_method="mobile-money",
        delivery_method="home-delivery",
        delivery_address=None,
    ):
        if delivery_address is None and delivery_method == "home-delivery":
            delivery_address = address
        return current_domain.process(
            PlaceOrder(
                consumer_id=consumer_id,
                items=json.dumps([{"product_id": pid, "quantity": qty} for pid, qty in items]),
                payment_method=payment_method,
                delivery_method=delivery_method,
                delivery_address=json.dumps(delivery_address) if delivery_address else None,
            ),
            asynchronous=False,
        )

    return _make
