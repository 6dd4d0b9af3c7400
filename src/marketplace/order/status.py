"""Order status updates by producers, deliverers and admins — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.cancellation import CANCELLED_BY_STAFF_NOTE, compensate_cancellation
from marketplace.order.order import Order, OrderStatus, parse_status
from marketplace.roles import Role, require_role

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    status = String(required=True, max_length=20)
    note = String(max_length=500)


@marketplace.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        require_role(command.actor_role, Role.PRODUCER, Role.DELIVERER, Role.ADMIN)
        target = parse_status(command.status)

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status

        order.update_status(target.value, command.actor_id, command.note)
        if target == OrderStatus.CANCELLED:
            compensate_cancellation(order, CANCELLED_BY_STAFF_NOTE)
        repo.add(order)

        logger.info(
            "Order status updated",
            order_id=str(order.id),
            previous_status=previous,
            new_status=order.status,
            actor_id=str(command.actor_id),
            actor_role=command.actor_role,
        )
