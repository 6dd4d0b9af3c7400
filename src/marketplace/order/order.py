"""Order aggregate (CQRS) — the core of the marketplace.

Line items snapshot product, producer and price at placement time and never
change afterwards. Every status change is appended to the status history,
which is never edited.

State Machine:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    PENDING → PROCESSING (deliverer accepted before confirmation)
    PROCESSING → DELIVERED (delivered without an in-transit step)
    {PENDING, CONFIRMED, PROCESSING, SHIPPED} → CANCELLED
"""

import json
import random
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.exceptions import AlreadyAssigned, AuthorizationError, InvalidTransition
from marketplace.order.events import (
    DelivererAssigned,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentStatusChanged,
)
from marketplace.roles import Role


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    CARD = "card"
    MOBILE_MONEY = "mobile-money"
    CASH_ON_DELIVERY = "cash-on-delivery"


class DeliveryMethod(Enum):
    HOME_DELIVERY = "home-delivery"
    PICKUP_POINT = "pickup-point"
    FARM_PICKUP = "farm-pickup"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}

_TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# States from which the consumer may cancel their own order
_CONSUMER_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
}

# States in which an unassigned home-delivery order can be picked up
ASSIGNABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
}

_SETTLEABLE_PAYMENT_STATES = {PaymentStatus.PENDING, PaymentStatus.FAILED}

_ADDRESS_FIELDS = ("street", "city", "region", "postal_code", "latitude", "longitude")


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None


def generate_order_number(now: datetime | None = None) -> str:
    """Return a human facing order number such as ``ORD25030042``."""
    now = now or datetime.now(UTC)
    return f"ORD{now:%y%m}{random.randint(0, 9999):04d}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class DeliveryAddress:
    """Where a home-delivery order is dropped off, captured at placement time."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    region = String(max_length=100)
    postal_code = String(max_length=20)
    latitude = Float()
    longitude = Float()

    def one_line(self) -> str:
        return f"{self.street}, {self.city}"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """A line of the order, priced at the moment the order was placed."""

    product_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    subtotal = Float(required=True, min_value=0.0)


@marketplace.entity(part_of="Order")
class StatusChange:
    """One append-only entry of the order's status history."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    changed_by = Identifier()
    changed_at = DateTime(required=True)
    note = String(max_length=500)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    consumer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    total_amount = Float(default=0.0, min_value=0.0)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    status_history = HasMany(StatusChange)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    delivery_method = String(required=True, choices=DeliveryMethod)
    delivery_address = ValueObject(DeliveryAddress)
    deliverer_id = Identifier()
    estimated_delivery_date = DateTime()
    actual_delivery_date = DateTime()
    notes = Text()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        consumer_id,
        lines_data,
        payment_method,
        delivery_method,
        delivery_address=None,
        notes=None,
        order_number=None,
    ):
        """Place a new pending order.

        Args:
            consumer_id: The consumer placing the order.
            lines_data: List of dicts with product_id, producer_id,
                        product_name, quantity, unit_price.
            payment_method: One of ``PaymentMethod`` values.
            delivery_method: One of ``DeliveryMethod`` values.
            delivery_address: Dict with street, city and optionally region,
                              postal_code, latitude, longitude. Required for
                              home delivery.
            notes: Free text from the consumer.
            order_number: A number already checked to be free. One is
                          generated when omitted.
        """
        if not lines_data:
            raise ValidationError({"items": ["An order must contain at least one item"]})
        for line in lines_data:
            if int(line.get("quantity") or 0) < 1:
                raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        address = None
        if delivery_address:
            address = DeliveryAddress(**{k: v for k, v in delivery_address.items() if k in _ADDRESS_FIELDS})
        if delivery_method == DeliveryMethod.HOME_DELIVERY.value and address is None:
            raise ValidationError({"delivery_address": ["A delivery address is required for home delivery"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=order_number or generate_order_number(now),
            consumer_id=consumer_id,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            delivery_method=delivery_method,
            delivery_address=address,
            notes=notes,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        snapshot = []
        for line in lines_data:
            quantity = int(line["quantity"])
            unit_price = float(line["unit_price"])
            subtotal = round(unit_price * quantity, 2)
            order.add_items(
                OrderItem(
                    product_id=line["product_id"],
                    producer_id=line["producer_id"],
                    product_name=line.get("product_name"),
                    quantity=quantity,
                    unit_price=unit_price,
                    subtotal=subtotal,
                )
            )
            snapshot.append(
                {
                    "product_id": str(line["product_id"]),
                    "producer_id": str(line["producer_id"]),
                    "quantity": quantity,
                    "unit_price": unit_price,
                    "subtotal": subtotal,
                }
            )

        order.total_amount = round(sum(line["subtotal"] for line in snapshot), 2)
        order._append_history(OrderStatus.PENDING, consumer_id, now)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                consumer_id=str(consumer_id),
                producer_ids=json.dumps(order.producer_ids()),
                items=json.dumps(snapshot),
                total_amount=order.total_amount,
                payment_method=payment_method,
                delivery_method=delivery_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries on the aggregate
    # -------------------------------------------------------------------
    def producer_ids(self) -> list[str]:
        seen = []
        for item in self.items:
            if str(item.producer_id) not in seen:
                seen.append(str(item.producer_id))
        return seen

    def history(self) -> list[StatusChange]:
        return sorted(self.status_history, key=lambda entry: entry.sequence)

    def lines(self) -> list[dict]:
        return [{"product_id": str(i.product_id), "quantity": i.quantity} for i in self.items]

    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in _TERMINAL_STATES

    def is_visible_to(self, actor_id, role) -> bool:
        """The consumer, any producer of a line, the deliverer and admins may see the order."""
        actor_id = str(actor_id)
        if role == Role.ADMIN.value:
            return True
        if role == Role.CONSUMER.value:
            return str(self.consumer_id) == actor_id
        if role == Role.PRODUCER.value:
            return actor_id in self.producer_ids()
        if role == Role.DELIVERER.value:
            return self.deliverer_id is not None and str(self.deliverer_id) == actor_id
        return False

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _append_history(self, status: OrderStatus, actor_id, when: datetime, note: str | None = None) -> None:
        self.add_status_history(
            StatusChange(
                sequence=len(self.status_history) + 1,
                status=status.value,
                changed_by=str(actor_id) if actor_id else None,
                changed_at=when,
                note=note,
            )
        )

    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _transition(self, target_status: OrderStatus, actor_id, note: str | None = None) -> datetime:
        self._assert_can_transition(target_status)
        previous = self.status
        now = datetime.now(UTC)

        if target_status == OrderStatus.DELIVERED:
            self.actual_delivery_date = now
        self.status = target_status.value
        self.updated_at = now
        self._append_history(target_status, actor_id, now, note)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                consumer_id=str(self.consumer_id),
                previous_status=previous,
                new_status=target_status.value,
                changed_by=str(actor_id) if actor_id else None,
                changed_at=now,
            )
        )
        return now

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    def update_status(self, new_status: str, actor_id, note: str | None = None) -> None:
        """Move the order along the state machine. Cancellation goes through ``cancel``."""
        target = parse_status(new_status)
        if target == OrderStatus.CANCELLED:
            self.cancel(actor_id, note)
            return
        self._transition(target, actor_id, note)

    def mark_shipped(self, actor_id, note: str | None = None) -> None:
        self._transition(OrderStatus.SHIPPED, actor_id, note)

    def mark_delivered(self, actor_id, note: str | None = None) -> None:
        self._transition(OrderStatus.DELIVERED, actor_id, note)

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, actor_id, note: str | None = None) -> None:
        """Cancel the order. Paid orders are flagged for refund."""
        self._assert_can_transition(OrderStatus.CANCELLED)
        previous = self.status
        if self.payment_status == PaymentStatus.PAID.value:
            self._change_payment_status(PaymentStatus.REFUNDED)

        now = self._transition(OrderStatus.CANCELLED, actor_id, note)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                consumer_id=str(self.consumer_id),
                previous_status=previous,
                cancelled_by=str(actor_id) if actor_id else None,
                items=json.dumps(self.lines()),
                cancelled_at=now,
            )
        )

    def cancel_by_consumer(self, consumer_id, note: str | None = None) -> None:
        """Consumer-initiated cancellation of their own order, before it ships."""
        if str(self.consumer_id) != str(consumer_id):
            raise AuthorizationError({"order": ["Only the consumer who placed the order can cancel it"]})

        current = OrderStatus(self.status)
        if current not in _CONSUMER_CANCELLABLE_STATES:
            raise InvalidTransition({"status": [f"Order cannot be cancelled once {current.value}"]})

        self.cancel(consumer_id, note)

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def assign_deliverer(self, deliverer_id, estimated_delivery_date: datetime | None = None) -> None:
        """Bind the order to the deliverer who accepted it and move it to processing."""
        if self.deliverer_id:
            raise AlreadyAssigned({"order": ["Order already has a deliverer"]})
        if self.delivery_method != DeliveryMethod.HOME_DELIVERY.value:
            raise ValidationError({"delivery_method": ["Only home-delivery orders can be assigned to a deliverer"]})

        current = OrderStatus(self.status)
        if current not in ASSIGNABLE_STATES:
            raise InvalidTransition({"status": [f"Order cannot be assigned once {current.value}"]})

        now = datetime.now(UTC)
        self.deliverer_id = deliverer_id
        self.estimated_delivery_date = estimated_delivery_date

        if current == OrderStatus.PROCESSING:
            self.updated_at = now
            self._append_history(OrderStatus.PROCESSING, deliverer_id, now, "Deliverer assigned")
        else:
            self._transition(OrderStatus.PROCESSING, deliverer_id, "Deliverer assigned")

        self.raise_(
            DelivererAssigned(
                order_id=str(self.id),
                order_number=self.order_number,
                consumer_id=str(self.consumer_id),
                deliverer_id=str(deliverer_id),
                estimated_delivery_date=estimated_delivery_date,
                assigned_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def _change_payment_status(self, target: PaymentStatus) -> None:
        previous = self.payment_status
        now = datetime.now(UTC)
        self.payment_status = target.value
        self.updated_at = now
        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                previous_payment_status=previous,
                new_payment_status=target.value,
                changed_at=now,
            )
        )

    def record_payment(self, payment_status: str) -> None:
        """Record the outcome of a payment attempt."""
        try:
            target = PaymentStatus(payment_status)
        except ValueError:
            raise ValidationError({"payment_status": [f"Unknown payment status: {payment_status}"]}) from None

        if target not in (PaymentStatus.PAID, PaymentStatus.FAILED):
            raise ValidationError({"payment_status": ["Only paid or failed can be recorded"]})
        if OrderStatus(self.status) == OrderStatus.CANCELLED:
            raise InvalidTransition({"status": ["Payments cannot be recorded on a cancelled order"]})

        current = PaymentStatus(self.payment_status)
        if current not in _SETTLEABLE_PAYMENT_STATES:
            raise InvalidTransition(
                {"payment_status": [f"Cannot change payment from {current.value} to {target.value}"]}
            )

        self._change_payment_status(target)
