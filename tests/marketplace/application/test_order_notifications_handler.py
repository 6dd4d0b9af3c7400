"""Application tests for OrderNotificationHandler — producers and consumers are told what happened."""

from protean import current_domain

from marketplace.delivery.assignment import AcceptDelivery
from marketplace.order.status import UpdateOrderStatus


def _kinds(notifier, recipient_id):
    return [n["kind"] for n in notifier.sent_to(recipient_id)]


class TestOrderPlacedNotifications:
    def test_each_producer_is_told_once(self, notifier, make_product, make_order):
        a = make_product(producer_id="farm-A")
        a2 = make_product(producer_id="farm-A", name="Peppers")
        b = make_product(producer_id="farm-B", name="Mangoes")
        make_order([(a, 1), (a2, 1), (b, 1)])

        assert _kinds(notifier, "farm-A") == ["new_order"]
        assert _kinds(notifier, "farm-B") == ["new_order"]

    def test_notification_carries_order_reference(self, notifier, make_product, make_order):
        order_id = make_order([(make_product(producer_id="farm-A"), 1)])
        data = notifier.sent_to("farm-A")[0]["data"]
        assert data["order_id"] == order_id
        assert data["order_number"].startswith("ORD")


class TestStatusNotifications:
    def test_consumer_is_told_about_status_changes(self, notifier, make_product, make_order):
        order_id = make_order([(make_product(), 1)])
        current_domain.process(
            UpdateOrderStatus(order_id=order_id, actor_id="farm-001", actor_role="producer", status="confirmed"),
            asynchronous=False,
        )
        updates = [n for n in notifier.sent_to("consumer-001") if n["kind"] == "order_status"]
        assert len(updates) == 1
        assert updates[0]["data"]["status"] == "confirmed"
        assert updates[0]["data"]["previous_status"] == "pending"

    def test_consumer_is_told_about_deliverer(self, notifier, make_product, make_order):
        order_id = make_order([(make_product(), 1)])
        current_domain.process(
            AcceptDelivery(order_id=order_id, deliverer_id="driver-1", actor_role="deliverer"),
            asynchronous=False,
        )
        kinds = _kinds(notifier, "consumer-001")
        assert "delivery_assigned" in kinds
        assert "order_status" in kinds


class TestDispatchFailures:
    def test_failed_dispatch_does_not_block_order(self, notifier, make_product, make_order):
        from marketplace.order.order import Order

        notifier.configure(should_succeed=False, failure_reason="Push gateway down")
        order_id = make_order([(make_product(producer_id="farm-A"), 1)])

        assert current_domain.repository_for(Order).get(order_id) is not None
        assert notifier.sent_to("farm-A") == []
