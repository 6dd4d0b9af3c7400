"""Order notifications — fire-and-forget messages to producers and consumers.

Producers hear about new orders containing their products, consumers hear
about status changes and about the deliverer who accepted their order.
Delivery failures are logged and never propagate back into the order flow.
"""

import json

import structlog
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.notifications import get_notifier
from marketplace.order.events import DelivererAssigned, OrderPlaced, OrderStatusChanged
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


def _dispatch(recipient_id: str, kind: str, title: str, body: str, data: dict) -> None:
    try:
        result = get_notifier().send(
            recipient_id=recipient_id,
            kind=kind,
            title=title,
            body=body,
            data=data,
        )
    except Exception as e:
        logger.error(
            "Notification dispatch failed",
            recipient_id=recipient_id,
            kind=kind,
            error=str(e),
        )
        return

    if result.get("status") != "sent":
        logger.warning(
            "Notification not delivered",
            recipient_id=recipient_id,
            kind=kind,
            error=result.get("error", "Unknown dispatch error"),
        )


@marketplace.event_handler(part_of=Order)
class OrderNotificationHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        producer_ids = json.loads(event.producer_ids) if isinstance(event.producer_ids, str) else event.producer_ids
        for producer_id in producer_ids:
            _dispatch(
                recipient_id=str(producer_id),
                kind="new_order",
                title="New order",
                body=f"Order {event.order_number} includes your products",
                data={"order_id": str(event.order_id), "order_number": event.order_number},
            )

    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        _dispatch(
            recipient_id=str(event.consumer_id),
            kind="order_status",
            title="Order update",
            body=f"Order {event.order_number} is now {event.new_status}",
            data={
                "order_id": str(event.order_id),
                "previous_status": event.previous_status,
                "status": event.new_status,
            },
        )

    @handle(DelivererAssigned)
    def on_deliverer_assigned(self, event: DelivererAssigned) -> None:
        _dispatch(
            recipient_id=str(event.consumer_id),
            kind="delivery_assigned",
            title="Deliverer on the way",
            body=f"A deliverer accepted order {event.order_number}",
            data={"order_id": str(event.order_id), "deliverer_id": str(event.deliverer_id)},
        )
