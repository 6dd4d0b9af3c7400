"""Delivery progress — commands and handler.

The assigned deliverer reports progress; each change is mirrored onto the
order: in-transit ships the order and delivered completes it.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.delivery.delivery import Delivery, DeliveryStatus
from marketplace.domain import marketplace
from marketplace.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)

_REPORTABLE_STATUSES = {DeliveryStatus.IN_TRANSIT.value, DeliveryStatus.DELIVERED.value}


@marketplace.command(part_of="Delivery")
class UpdateDeliveryStatus:
    delivery_id = Identifier(required=True)
    deliverer_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    notes = Text()


@marketplace.command(part_of="Delivery")
class CompleteDelivery:
    delivery_id = Identifier(required=True)
    deliverer_id = Identifier(required=True)
    notes = Text()
    photo = String(max_length=500)
    signature = String(max_length=500)


@marketplace.command(part_of="Delivery")
class ReportDeliveryFailure:
    delivery_id = Identifier(required=True)
    deliverer_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


def _mirror_onto_order(delivery: Delivery) -> Order:
    """Carry the delivery's new status over to its order."""
    repo = current_domain.repository_for(Order)
    order = repo.get(str(delivery.order_id))
    current = OrderStatus(order.status)

    if delivery.status == DeliveryStatus.IN_TRANSIT.value and current != OrderStatus.SHIPPED:
        order.mark_shipped(delivery.deliverer_id, "Delivery in transit")
    elif delivery.status == DeliveryStatus.DELIVERED.value and current != OrderStatus.DELIVERED:
        order.mark_delivered(delivery.deliverer_id, "Delivery completed")

    repo.add(order)
    return order


@marketplace.command_handler(part_of=Delivery)
class DeliveryProgressHandler:
    @handle(UpdateDeliveryStatus)
    def update_status(self, command):
        if command.status not in _REPORTABLE_STATUSES:
            raise ValidationError({"status": [f"Invalid delivery status: {command.status}"]})

        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        delivery.assert_deliverer(command.deliverer_id)

        if command.status == DeliveryStatus.IN_TRANSIT.value:
            delivery.start_transit(command.notes)
        else:
            delivery.complete(command.notes)

        order = _mirror_onto_order(delivery)
        repo.add(delivery)

        logger.info(
            "Delivery status updated",
            delivery_id=str(delivery.id),
            status=delivery.status,
            order_status=order.status,
        )

    @handle(CompleteDelivery)
    def complete(self, command):
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        delivery.assert_deliverer(command.deliverer_id)
        delivery.complete(command.notes, photo=command.photo, signature=command.signature)

        order = _mirror_onto_order(delivery)
        repo.add(delivery)

        logger.info(
            "Delivery completed",
            delivery_id=str(delivery.id),
            order_id=str(order.id),
            with_proof=delivery.proof_of_delivery is not None,
        )

    @handle(ReportDeliveryFailure)
    def report_failure(self, command):
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        delivery.assert_deliverer(command.deliverer_id)
        delivery.fail(command.reason)
        repo.add(delivery)

        logger.warning(
            "Delivery failed",
            delivery_id=str(delivery.id),
            order_id=str(delivery.order_id),
            reason=command.reason,
        )
