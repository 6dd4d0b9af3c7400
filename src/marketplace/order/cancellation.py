"""Order cancellation — command, handler and compensation.

Cancelling returns every line's quantity to stock, fails any delivery that
was opened for the order and flags paid orders for refund. The same
compensation runs whether the consumer cancels or a producer, deliverer or
admin moves the order to cancelled.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.catalogue.ledger import release_lines
from marketplace.delivery.delivery import Delivery
from marketplace.domain import marketplace
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)

CANCELLED_BY_CUSTOMER_NOTE = "[Auto] Cancelled by customer"
CANCELLED_BY_STAFF_NOTE = "[Auto] Order cancelled"


@marketplace.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    consumer_id = Identifier(required=True)
    reason = String(max_length=500)


def compensate_cancellation(order: Order, delivery_note: str) -> None:
    """Undo the side effects of a placed order that has just been cancelled."""
    release_lines(order.lines())

    repo = current_domain.repository_for(Delivery)
    delivery = repo.for_order(order.id)
    if delivery is not None:
        if delivery.is_terminal():
            delivery.append_note(delivery_note)
        else:
            delivery.fail(delivery_note)
        repo.add(delivery)

    logger.info(
        "Cancellation compensated",
        order_id=str(order.id),
        released_lines=len(order.items),
        delivery_id=str(delivery.id) if delivery else None,
    )


@marketplace.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel_by_consumer(command.consumer_id, command.reason)
        compensate_cancellation(order, CANCELLED_BY_CUSTOMER_NOTE)
        repo.add(order)
