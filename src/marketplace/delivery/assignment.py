"""Delivery assignment — a deliverer accepts an unassigned home-delivery order."""

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.delivery.delivery import Delivery, Location
from marketplace.domain import marketplace
from marketplace.exceptions import AlreadyAssigned
from marketplace.order.order import Order
from marketplace.roles import Role, require_role

logger = structlog.get_logger(__name__)

DEFAULT_PICKUP_ADDRESS = "Producer address"


@marketplace.command(part_of="Delivery")
class AcceptDelivery:
    order_id = Identifier(required=True)
    deliverer_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    pickup_address = String(max_length=500)
    distance_km = Float(min_value=0.0)
    delivery_fee = Float(min_value=0.0)
    notes = Text()


@marketplace.command_handler(part_of=Delivery)
class AcceptDeliveryHandler:
    @handle(AcceptDelivery)
    def accept_delivery(self, command):
        require_role(command.actor_role, Role.DELIVERER)

        order_repo = current_domain.repository_for(Order)
        delivery_repo = current_domain.repository_for(Delivery)

        order = order_repo.get(command.order_id)
        if delivery_repo.for_order(order.id) is not None:
            raise AlreadyAssigned({"order": ["A delivery already exists for this order"]})

        address = order.delivery_address
        latitude = address.latitude if address else None
        longitude = address.longitude if address else None

        delivery = Delivery.open(
            order_id=str(order.id),
            deliverer_id=command.deliverer_id,
            delivery_location=Location(
                address=address.one_line() if address else None,
                latitude=latitude,
                longitude=longitude,
            ),
            pickup_location=Location(
                address=command.pickup_address or DEFAULT_PICKUP_ADDRESS,
                latitude=latitude,
                longitude=longitude,
            ),
            distance_km=command.distance_km,
            delivery_fee=command.delivery_fee or 0.0,
            notes=command.notes,
        )
        order.assign_deliverer(command.deliverer_id, delivery.estimated_time)

        order_repo.add(order)
        delivery_repo.add(delivery)

        logger.info(
            "Delivery accepted",
            delivery_id=str(delivery.id),
            order_id=str(order.id),
            deliverer_id=str(command.deliverer_id),
        )
        return str(delivery.id)
