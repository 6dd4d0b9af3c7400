"""Read-side queries over orders.

Access is scoped by the acting user's role: consumers see their own orders,
producers see orders containing their products, deliverers see orders
assigned to them and admins see everything.
"""

import math
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.exceptions import AuthorizationError
from marketplace.order.order import Order, parse_status
from marketplace.roles import Role, require_role

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def paginate(items: list, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> dict:
    """Slice ``items`` into a 1-based page."""
    if page < 1:
        raise ValidationError({"page": ["Page must be at least 1"]})
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError({"limit": [f"Limit must be between 1 and {MAX_PAGE_SIZE}"]})

    total = len(items)
    start = (page - 1) * limit
    return {
        "items": items[start : start + limit],
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if total else 0,
    }


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _with_status(orders: list[Order], status: str | None) -> list[Order]:
    if not status:
        return orders
    wanted = parse_status(status).value
    return [o for o in orders if o.status == wanted]


def get_order(order_id, actor_id, actor_role) -> Order:
    """Load an order the actor is allowed to see."""
    order = current_domain.repository_for(Order).get(str(order_id))
    if not order.is_visible_to(actor_id, actor_role):
        raise AuthorizationError({"order": ["You are not allowed to view this order"]})
    return order


def orders_for_consumer(consumer_id, status=None, page=1, limit=DEFAULT_PAGE_SIZE) -> dict:
    orders = current_domain.repository_for(Order).for_consumer(consumer_id)
    return paginate(_with_status(orders, status), page, limit)


def orders_for_producer(producer_id, status=None, page=1, limit=DEFAULT_PAGE_SIZE) -> dict:
    orders = current_domain.repository_for(Order).for_producer(producer_id)
    return paginate(_with_status(orders, status), page, limit)


def orders_for_deliverer(deliverer_id, status=None, page=1, limit=DEFAULT_PAGE_SIZE) -> dict:
    orders = current_domain.repository_for(Order).for_deliverer(deliverer_id)
    return paginate(_with_status(orders, status), page, limit)


def available_for_delivery(actor_role, page=1, limit=DEFAULT_PAGE_SIZE) -> dict:
    """Unassigned home-delivery orders, newest first. Not filtered by zone."""
    require_role(actor_role, Role.DELIVERER, Role.ADMIN)
    orders = current_domain.repository_for(Order).available_for_delivery()
    return paginate(orders, page, limit)


def _scoped_orders(actor_id, actor_role) -> list[Order]:
    repo = current_domain.repository_for(Order)
    if actor_role == Role.CONSUMER.value:
        return repo.for_consumer(actor_id)
    if actor_role == Role.PRODUCER.value:
        return repo.for_producer(actor_id)
    if actor_role == Role.DELIVERER.value:
        return repo.for_deliverer(actor_id)
    if actor_role == Role.ADMIN.value:
        return repo.everything()
    raise AuthorizationError({"role": [f"Role {actor_role} has no transaction history"]})


def transaction_history(
    actor_id,
    actor_role,
    status: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """Orders visible to the actor with simple statistics.

    ``total_transactions`` counts every match; ``total_amount`` and
    ``by_status`` summarize the returned page.
    """
    orders = _with_status(_scoped_orders(actor_id, actor_role), status)
    if start_date:
        orders = [o for o in orders if _aware(o.created_at) >= _aware(start_date)]
    if end_date:
        orders = [o for o in orders if _aware(o.created_at) <= _aware(end_date)]

    result = paginate(orders, page, limit)

    by_status = {}
    total_amount = 0.0
    for order in result["items"]:
        total_amount += order.total_amount or 0.0
        by_status[order.status] = by_status.get(order.status, 0) + 1

    result["stats"] = {
        "total_transactions": result["total"],
        "total_amount": round(total_amount, 2),
        "by_status": by_status,
    }
    return result
