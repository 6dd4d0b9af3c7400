"""Domain events for the Delivery aggregate."""

from protean.fields import DateTime, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Delivery")
class DeliveryAssigned:
    """A deliverer accepted an order and a delivery was opened for it."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    deliverer_id = Identifier(required=True)
    estimated_time = DateTime()
    assigned_at = DateTime(required=True)


@marketplace.event(part_of="Delivery")
class DeliveryStatusChanged:
    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Delivery")
class DeliveryFailed:
    """The delivery will not be completed."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    failed_at = DateTime(required=True)
