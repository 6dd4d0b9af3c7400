"""Shared BDD fixtures and step definitions for the marketplace."""

import pytest
from protean import current_domain
from protean.exceptions import InvalidOperationError, ValidationError
from pytest_bdd import given, parsers, then, when

from marketplace.cart.items import AddToCart, get_cart
from marketplace.catalogue.ledger import get_product
from marketplace.delivery.assignment import AcceptDelivery
from marketplace.delivery.delivery import Delivery
from marketplace.order.cancellation import CancelOrder
from marketplace.order.order import Order
from marketplace.order.status import UpdateOrderStatus

CONSUMER_ID = "consumer-001"
PRODUCER_ID = "farm-001"


@pytest.fixture()
def error():
    """Container for the domain error raised by a When step, if any."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse("a product with {stock:d} units in stock at {price:f} each"),
    target_fixture="product_id",
)
def _(make_product, stock, price):
    return make_product(producer_id=PRODUCER_ID, price=price, stock=stock)


@given(parsers.cfparse("the consumer has {quantity:d} unit of the product in the cart"))
@given(parsers.cfparse("the consumer has {quantity:d} units of the product in the cart"))
def _(product_id, quantity):
    current_domain.process(
        AddToCart(consumer_id=CONSUMER_ID, product_id=product_id, quantity=quantity),
        asynchronous=False,
    )


@given(parsers.cfparse("the consumer ordered {quantity:d} units of the product"), target_fixture="order_id")
def _(make_order, product_id, quantity):
    return make_order([(product_id, quantity)], consumer_id=CONSUMER_ID)


@given(parsers.cfparse('the order was moved to "{status}"'))
def _(order_id, status):
    current_domain.process(
        UpdateOrderStatus(order_id=order_id, actor_id="admin-1", actor_role="admin", status=status),
        asynchronous=False,
    )


@given(parsers.cfparse('deliverer "{deliverer_id}" accepted the order'), target_fixture="delivery_id")
def _(order_id, deliverer_id):
    return current_domain.process(
        AcceptDelivery(order_id=order_id, deliverer_id=deliverer_id, actor_role="deliverer"),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Shared When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("the consumer orders {quantity:d} units of the product"), target_fixture="order_id")
def _(make_order, product_id, quantity, error):
    try:
        return make_order([(product_id, quantity)], consumer_id=CONSUMER_ID)
    except ValidationError as exc:
        error["exc"] = exc
        return None


@when("the consumer cancels the order")
def _(order_id, error):
    try:
        current_domain.process(CancelOrder(order_id=order_id, consumer_id=CONSUMER_ID), asynchronous=False)
    except (ValidationError, InvalidOperationError) as exc:
        error["exc"] = exc


@when(parsers.cfparse('an admin moves the order to "{status}"'))
def _(order_id, status, error):
    try:
        current_domain.process(
            UpdateOrderStatus(order_id=order_id, actor_id="admin-1", actor_role="admin", status=status),
            asynchronous=False,
        )
    except ValidationError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the action fails with "{error_name}"'))
def _(error, error_name):
    assert error["exc"] is not None
    assert type(error["exc"]).__name__ == error_name


@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.cfparse("the order total is {amount:f}"))
def _(order_id, amount):
    assert current_domain.repository_for(Order).get(order_id).total_amount == amount


@then(parsers.cfparse("the order history has {count:d} entries"))
def _(order_id, count):
    assert len(current_domain.repository_for(Order).get(order_id).status_history) == count


@then(parsers.cfparse('the order is assigned to "{deliverer_id}"'))
def _(order_id, deliverer_id):
    assert str(current_domain.repository_for(Order).get(order_id).deliverer_id) == deliverer_id


@then(parsers.cfparse("the product stock is {stock:d}"))
def _(product_id, stock):
    assert get_product(product_id).stock == stock


@then(parsers.cfparse('the delivery status is "{status}"'))
def _(delivery_id, status):
    assert current_domain.repository_for(Delivery).get(delivery_id).status == status


@then("the cart is empty")
def _():
    assert len(get_cart(CONSUMER_ID).items) == 0
