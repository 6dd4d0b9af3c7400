"""Read-side queries over deliveries."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.delivery.delivery import Delivery, DeliveryStatus
from marketplace.exceptions import AuthorizationError, NotFound
from marketplace.order.order import Order
from marketplace.order.queries import DEFAULT_PAGE_SIZE, paginate
from marketplace.roles import Role, require_role

_IN_PROGRESS = {DeliveryStatus.ASSIGNED.value, DeliveryStatus.IN_TRANSIT.value}


def get_delivery(delivery_id, actor_id, actor_role) -> Delivery:
    """Load a delivery visible to the actor: its deliverer, admins, and the order's consumer or producers."""
    try:
        delivery = current_domain.repository_for(Delivery).get(str(delivery_id))
    except ObjectNotFoundError:
        raise NotFound({"delivery_id": [f"Delivery {delivery_id} not found"]}) from None

    if actor_role == Role.ADMIN.value or str(delivery.deliverer_id) == str(actor_id):
        return delivery

    if actor_role in (Role.CONSUMER.value, Role.PRODUCER.value):
        try:
            order = current_domain.repository_for(Order).get(str(delivery.order_id))
        except ObjectNotFoundError:
            order = None
        if order is not None and order.is_visible_to(actor_id, actor_role):
            return delivery

    raise AuthorizationError({"delivery": ["You are not allowed to view this delivery"]})


def deliveries_for(actor_id, actor_role, status=None, page=1, limit=DEFAULT_PAGE_SIZE) -> dict:
    """Deliverers list their own deliveries; admins list all of them."""
    require_role(actor_role, Role.DELIVERER, Role.ADMIN)
    repo = current_domain.repository_for(Delivery)
    deliveries = repo.everything() if actor_role == Role.ADMIN.value else repo.for_deliverer(actor_id)
    if status:
        deliveries = [d for d in deliveries if d.status == status]
    return paginate(deliveries, page, limit)


def deliverer_history(deliverer_id) -> dict:
    """All of a deliverer's deliveries with completion statistics."""
    deliveries = current_domain.repository_for(Delivery).for_deliverer(deliverer_id)
    return {
        "deliveries": deliveries,
        "stats": {
            "total": len(deliveries),
            "completed": sum(1 for d in deliveries if d.status == DeliveryStatus.DELIVERED.value),
            "in_progress": sum(1 for d in deliveries if d.status in _IN_PROGRESS),
            "failed": sum(1 for d in deliveries if d.status == DeliveryStatus.FAILED.value),
        },
    }
