"""Domain events for the Order aggregate.

Events are versioned, immutable facts. They drive notifications and form the
order's audit trail alongside the status history.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A consumer placed a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    consumer_id = Identifier(required=True)
    producer_ids = Text(required=True)  # JSON: list of producer ids
    items = Text(required=True)  # JSON: list of line dicts
    total_amount = Float(required=True)
    payment_method = String(required=True)
    delivery_method = String(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """The order moved from one status to another."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    consumer_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = Identifier()
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled and its stock released."""

    __version__ = 1

    order_id = Identifier(required=True)
    consumer_id = Identifier(required=True)
    previous_status = String(required=True)
    cancelled_by = Identifier()
    items = Text(required=True)  # JSON: list of released line dicts
    cancelled_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class DelivererAssigned:
    """A deliverer accepted the order for home delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    consumer_id = Identifier(required=True)
    deliverer_id = Identifier(required=True)
    estimated_delivery_date = DateTime()
    assigned_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class PaymentStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_payment_status = String(required=True)
    new_payment_status = String(required=True)
    changed_at = DateTime(required=True)
