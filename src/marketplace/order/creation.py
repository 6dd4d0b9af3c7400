"""Order creation — commands and handler.

Placing an order pre-checks every line against the catalogue, snapshots the
current prices, reserves stock through the ledger, persists the pending order
and finally empties the consumer's cart.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.catalogue.ledger import check_availability, reserve_lines
from marketplace.domain import marketplace
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    consumer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity}
    payment_method = String(required=True, max_length=50)
    delivery_method = String(required=True, max_length=50)
    delivery_address = Text()  # JSON: address dict
    notes = Text()


@marketplace.command(part_of="Order")
class Checkout:
    """Place an order from everything currently in the consumer's cart."""

    consumer_id = Identifier(required=True)
    payment_method = String(required=True, max_length=50)
    delivery_method = String(required=True, max_length=50)
    delivery_address = Text()  # JSON: address dict
    notes = Text()


def _parse_lines(raw) -> list[dict]:
    try:
        items = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        raise ValidationError({"items": ["Items must be valid JSON"]}) from None
    if not items:
        raise ValidationError({"items": ["An order must contain at least one item"]})
    if not isinstance(items, list):
        raise ValidationError({"items": ["Items must be a list of {product_id, quantity} objects"]})

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError({"items": ["Each item must be a {product_id, quantity} object"]})
        if not item.get("product_id"):
            raise ValidationError({"product_id": ["Each item needs a product_id"]})
        try:
            quantity = int(item.get("quantity"))
        except (TypeError, ValueError):
            raise ValidationError({"quantity": ["Quantity must be a whole number"]}) from None
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        lines.append({"product_id": str(item["product_id"]), "quantity": quantity})
    return lines


def _clear_cart(consumer_id) -> None:
    """Empty the consumer's cart. Failures are logged and never undo the order."""
    repo = current_domain.repository_for(ShoppingCart)
    try:
        cart = repo.get(str(consumer_id))
    except ObjectNotFoundError:
        return

    try:
        cart.clear()
        repo.add(cart)
    except Exception as exc:
        logger.warning(
            "Failed to clear cart after order placement",
            consumer_id=str(consumer_id),
            error=str(exc),
        )


def place_order(consumer_id, lines, payment_method, delivery_method, delivery_address=None, notes=None) -> Order:
    products = check_availability(lines)

    unavailable = [p.name for p in products.values() if not p.is_available]
    if unavailable:
        raise ValidationError({"items": [f"Product not available: {', '.join(unavailable)}"]})

    lines_data = [
        {
            "product_id": line["product_id"],
            "producer_id": str(products[line["product_id"]].producer_id),
            "product_name": products[line["product_id"]].name,
            "quantity": line["quantity"],
            "unit_price": products[line["product_id"]].price,
        }
        for line in lines
    ]
    repo = current_domain.repository_for(Order)
    order = Order.place(
        consumer_id=consumer_id,
        lines_data=lines_data,
        payment_method=payment_method,
        delivery_method=delivery_method,
        delivery_address=delivery_address,
        notes=notes,
        order_number=repo.next_order_number(),
    )

    reserve_lines(lines)
    repo.add(order)
    _clear_cart(consumer_id)

    logger.info(
        "Order placed",
        order_id=str(order.id),
        order_number=order.order_number,
        consumer_id=str(consumer_id),
        total_amount=order.total_amount,
    )
    return order


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place(self, command):
        delivery_address = (
            json.loads(command.delivery_address)
            if isinstance(command.delivery_address, str)
            else command.delivery_address
        )
        order = place_order(
            consumer_id=command.consumer_id,
            lines=_parse_lines(command.items),
            payment_method=command.payment_method,
            delivery_method=command.delivery_method,
            delivery_address=delivery_address,
            notes=command.notes,
        )
        return str(order.id)

    @handle(Checkout)
    def checkout(self, command):
        try:
            cart = current_domain.repository_for(ShoppingCart).get(str(command.consumer_id))
        except ObjectNotFoundError:
            cart = None
        if cart is None or not cart.items:
            raise ValidationError({"cart": ["Cannot check out an empty cart"]})

        delivery_address = (
            json.loads(command.delivery_address)
            if isinstance(command.delivery_address, str)
            else command.delivery_address
        )
        order = place_order(
            consumer_id=command.consumer_id,
            lines=cart.lines(),
            payment_method=command.payment_method,
            delivery_method=command.delivery_method,
            delivery_address=delivery_address,
            notes=command.notes,
        )
        return str(order.id)
