"""Delivery aggregate (CQRS) — a deliverer's commitment to bring one order home.

A delivery is opened when a deliverer accepts an unassigned home-delivery
order and is never deleted. Its progress is mirrored onto the order by the
command handlers.

State Machine:
    ASSIGNED → IN_TRANSIT → DELIVERED
    ASSIGNED → DELIVERED
    {ASSIGNED, IN_TRANSIT} → FAILED
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String, Text, ValueObject

from marketplace.delivery.events import DeliveryAssigned, DeliveryFailed, DeliveryStatusChanged
from marketplace.domain import marketplace
from marketplace.exceptions import AuthorizationError, InvalidTransition

ESTIMATED_DELIVERY_WINDOW = timedelta(hours=2)


class DeliveryStatus(Enum):
    ASSIGNED = "assigned"
    IN_TRANSIT = "in-transit"
    DELIVERED = "delivered"
    FAILED = "failed"


_VALID_TRANSITIONS = {
    DeliveryStatus.ASSIGNED: {DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED, DeliveryStatus.FAILED},
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED},
    DeliveryStatus.DELIVERED: set(),  # terminal
    DeliveryStatus.FAILED: set(),  # terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Delivery")
class Location:
    address = String(max_length=500)
    latitude = Float()
    longitude = Float()


@marketplace.value_object(part_of="Delivery")
class ProofOfDelivery:
    """Opaque references to files held by the storage service."""

    signature = String(max_length=500)
    photo = String(max_length=500)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Delivery:
    order_id = Identifier(required=True)
    deliverer_id = Identifier(required=True)
    status = String(
        choices=DeliveryStatus,
        default=DeliveryStatus.ASSIGNED.value,
    )
    pickup_location = ValueObject(Location)
    delivery_location = ValueObject(Location)
    estimated_time = DateTime()
    actual_delivery_time = DateTime()
    distance_km = Float(min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    notes = Text()
    proof_of_delivery = ValueObject(ProofOfDelivery)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def open(
        cls,
        order_id,
        deliverer_id,
        delivery_location: Location | None = None,
        pickup_location: Location | None = None,
        distance_km: float | None = None,
        delivery_fee: float = 0.0,
        notes: str | None = None,
    ):
        """Open an assigned delivery with a two hour delivery estimate."""
        now = datetime.now(UTC)
        delivery = cls(
            order_id=order_id,
            deliverer_id=deliverer_id,
            status=DeliveryStatus.ASSIGNED.value,
            pickup_location=pickup_location,
            delivery_location=delivery_location,
            estimated_time=now + ESTIMATED_DELIVERY_WINDOW,
            distance_km=distance_km,
            delivery_fee=delivery_fee or 0.0,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        delivery.raise_(
            DeliveryAssigned(
                delivery_id=str(delivery.id),
                order_id=str(order_id),
                deliverer_id=str(deliverer_id),
                estimated_time=delivery.estimated_time,
                assigned_at=now,
            )
        )
        return delivery

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def assert_deliverer(self, deliverer_id) -> None:
        if str(self.deliverer_id) != str(deliverer_id):
            raise AuthorizationError({"delivery": ["Only the assigned deliverer can update this delivery"]})

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes}\n{note}" if self.notes else note

    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[DeliveryStatus(self.status)]

    def _transition(self, target_status: DeliveryStatus) -> datetime:
        current = DeliveryStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        self.raise_(
            DeliveryStatusChanged(
                delivery_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=current.value,
                new_status=target_status.value,
                changed_at=now,
            )
        )
        return now

    # -------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------
    def start_transit(self, notes: str | None = None) -> None:
        self._transition(DeliveryStatus.IN_TRANSIT)
        if notes:
            self.append_note(notes)

    def complete(self, notes: str | None = None, photo: str | None = None, signature: str | None = None) -> None:
        now = self._transition(DeliveryStatus.DELIVERED)
        self.actual_delivery_time = now
        if photo or signature:
            self.proof_of_delivery = ProofOfDelivery(signature=signature, photo=photo)
        if notes:
            self.append_note(notes)

    def fail(self, reason: str | None = None) -> None:
        now = self._transition(DeliveryStatus.FAILED)
        if reason:
            self.append_note(reason)
        self.raise_(
            DeliveryFailed(
                delivery_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason,
                failed_at=now,
            )
        )
