"""Tests for placing an Order — validation, price snapshots and the first history entry."""

import json
import re

import pytest
from protean.exceptions import ValidationError

from marketplace.order.events import OrderPlaced
from marketplace.order.order import (
    DeliveryAddress,
    Order,
    OrderStatus,
    PaymentStatus,
    generate_order_number,
)

ADDRESS = {"street": "12 Rue des Palmiers", "city": "Dakar", "latitude": 14.69, "longitude": -17.44}


def _lines():
    return [
        {
            "product_id": "prod-1",
            "producer_id": "farm-A",
            "product_name": "Tomatoes",
            "quantity": 3,
            "unit_price": 2.5,
        },
        {
            "product_id": "prod-2",
            "producer_id": "farm-B",
            "product_name": "Mangoes",
            "quantity": 2,
            "unit_price": 1.25,
        },
    ]


def _place(**overrides):
    kwargs = {
        "consumer_id": "consumer-001",
        "lines_data": _lines(),
        "payment_method": "mobile-money",
        "delivery_method": "home-delivery",
        "delivery_address": ADDRESS,
    }
    kwargs.update(overrides)
    return Order.place(**kwargs)


class TestOrderPlacement:
    def test_new_order_is_pending(self):
        order = _place()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.deliverer_id is None

    def test_total_is_sum_of_subtotals(self):
        order = _place()
        assert order.total_amount == 10.0
        subtotals = sorted(i.subtotal for i in order.items)
        assert subtotals == [2.5, 7.5]

    def test_lines_snapshot_producer_and_price(self):
        order = _place()
        line = next(i for i in order.items if str(i.product_id) == "prod-1")
        assert str(line.producer_id) == "farm-A"
        assert line.product_name == "Tomatoes"
        assert line.unit_price == 2.5

    def test_first_history_entry(self):
        order = _place()
        history = order.history()
        assert len(history) == 1
        assert history[0].status == "pending"
        assert str(history[0].changed_by) == "consumer-001"
        assert history[0].sequence == 1

    def test_order_number_format(self):
        order = _place()
        assert re.fullmatch(r"ORD\d{8}", order.order_number)

    def test_generate_order_number_uses_year_and_month(self):
        from datetime import UTC, datetime

        number = generate_order_number(datetime(2025, 3, 14, tzinfo=UTC))
        assert number.startswith("ORD2503")
        assert len(number) == 11

    def test_delivery_address_captured(self):
        order = _place()
        assert isinstance(order.delivery_address, DeliveryAddress)
        assert order.delivery_address.one_line() == "12 Rue des Palmiers, Dakar"
        assert order.delivery_address.latitude == 14.69

    def test_producer_ids_are_distinct(self):
        lines = _lines()
        lines[1]["producer_id"] = "farm-A"
        order = _place(lines_data=lines)
        assert order.producer_ids() == ["farm-A"]

    def test_order_placed_event(self):
        order = _place()
        event = order._events[-1]
        assert isinstance(event, OrderPlaced)
        assert event.order_number == order.order_number
        assert sorted(json.loads(event.producer_ids)) == ["farm-A", "farm-B"]
        assert len(json.loads(event.items)) == 2
        assert event.total_amount == 10.0


class TestPlacementValidation:
    def test_empty_order_rejected(self):
        with pytest.raises(ValidationError):
            _place(lines_data=[])

    def test_zero_quantity_rejected(self):
        lines = _lines()
        lines[0]["quantity"] = 0
        with pytest.raises(ValidationError):
            _place(lines_data=lines)

    def test_home_delivery_requires_address(self):
        with pytest.raises(ValidationError) as exc:
            _place(delivery_address=None)
        assert "delivery_address" in exc.value.messages

    def test_pickup_without_address_is_fine(self):
        order = _place(delivery_method="farm-pickup", delivery_address=None)
        assert order.delivery_address is None

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValidationError):
            _place(payment_method="cheque")

    def test_unknown_delivery_method_rejected(self):
        with pytest.raises(ValidationError):
            _place(delivery_method="drone")


class TestVisibility:
    def test_consumer_sees_own_order_only(self):
        order = _place()
        assert order.is_visible_to("consumer-001", "consumer")
        assert not order.is_visible_to("consumer-002", "consumer")

    def test_producer_sees_orders_with_their_lines(self):
        order = _place()
        assert order.is_visible_to("farm-B", "producer")
        assert not order.is_visible_to("farm-Z", "producer")

    def test_deliverer_sees_only_assigned_orders(self):
        order = _place()
        assert not order.is_visible_to("driver-1", "deliverer")
        order.assign_deliverer("driver-1")
        assert order.is_visible_to("driver-1", "deliverer")

    def test_admin_sees_everything(self):
        assert _place().is_visible_to("admin-1", "admin")
