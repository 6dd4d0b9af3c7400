"""Application tests for the read side — scoped order lists, transactions and deliveries."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.delivery import queries as delivery_queries
from marketplace.delivery.assignment import AcceptDelivery
from marketplace.delivery.delivery import Delivery
from marketplace.delivery.progress import ReportDeliveryFailure, UpdateDeliveryStatus
from marketplace.exceptions import AuthorizationError, NotFound
from marketplace.order import queries
from marketplace.order.order import Order
from marketplace.order.status import UpdateOrderStatus


def _accept(order_id, deliverer_id="driver-1"):
    return current_domain.process(
        AcceptDelivery(order_id=order_id, deliverer_id=deliverer_id, actor_role="deliverer"),
        asynchronous=False,
    )


class TestPaginate:
    def test_first_page(self):
        page = queries.paginate(list(range(25)), page=1, limit=10)
        assert page["items"] == list(range(10))
        assert page["total"] == 25
        assert page["pages"] == 3

    def test_last_page(self):
        page = queries.paginate(list(range(25)), page=3, limit=10)
        assert page["items"] == [20, 21, 22, 23, 24]

    def test_empty(self):
        page = queries.paginate([], page=1, limit=10)
        assert page["items"] == []
        assert page["pages"] == 0

    @pytest.mark.parametrize("page, limit", [(0, 10), (1, 0), (1, 101)])
    def test_bad_bounds(self, page, limit):
        with pytest.raises(ValidationError):
            queries.paginate([1, 2, 3], page=page, limit=limit)


class TestGetOrder:
    def test_owner_reads_order(self, make_product, make_order):
        order_id = make_order([(make_product(), 1)])
        order = queries.get_order(order_id, "consumer-001", "consumer")
        assert str(order.id) == order_id

    def test_producer_of_a_line_reads_order(self, make_product, make_order):
        order_id = make_order([(make_product(producer_id="farm-A"), 1)])
        assert queries.get_order(order_id, "farm-A", "producer") is not None

    def test_stranger_is_refused(self, make_product, make_order):
        order_id = make_order([(make_product(producer_id="farm-A"), 1)])
        with pytest.raises(AuthorizationError):
            queries.get_order(order_id, "farm-Z", "producer")
        with pytest.raises(AuthorizationError):
            queries.get_order(order_id, "consumer-999", "consumer")

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            queries.get_order("order-404", "admin-1", "admin")


class TestScopedLists:
    def test_consumer_orders_with_status_filter(self, make_product, make_order):
        product_id = make_product(stock=50)
        first = make_order([(product_id, 1)])
        make_order([(product_id, 1)])
        make_order([(product_id, 1)], consumer_id="consumer-002")
        current_domain.process(
            UpdateOrderStatus(order_id=first, actor_id="admin-1", actor_role="admin", status="confirmed"),
            asynchronous=False,
        )

        mine = queries.orders_for_consumer("consumer-001")
        assert mine["total"] == 2

        confirmed = queries.orders_for_consumer("consumer-001", status="confirmed")
        assert [str(o.id) for o in confirmed["items"]] == [first]

    def test_unknown_status_filter(self):
        with pytest.raises(ValidationError):
            queries.orders_for_consumer("consumer-001", status="lost")

    def test_producer_sees_orders_containing_their_products(self, make_product, make_order):
        a = make_product(producer_id="farm-A", stock=10)
        b = make_product(producer_id="farm-B", name="Mangoes", stock=10)
        make_order([(a, 1)])
        make_order([(a, 1), (b, 1)])
        make_order([(b, 1)])
        assert queries.orders_for_producer("farm-A")["total"] == 2
        assert queries.orders_for_producer("farm-B")["total"] == 2
        assert queries.orders_for_producer("farm-C")["total"] == 0

    def test_deliverer_sees_assigned_orders(self, make_product, make_order):
        product_id = make_product(stock=10)
        first = make_order([(product_id, 1)])
        make_order([(product_id, 1)])
        _accept(first)
        page = queries.orders_for_deliverer("driver-1")
        assert [str(o.id) for o in page["items"]] == [first]

    def test_newest_first(self, make_product, make_order):
        product_id = make_product(stock=10)
        first = make_order([(product_id, 1)])
        second = make_order([(product_id, 1)])
        ids = [str(o.id) for o in queries.orders_for_consumer("consumer-001")["items"]]
        assert ids == [second, first]


class TestAvailableForDelivery:
    def test_lists_unassigned_home_delivery_orders(self, make_product, make_order):
        product_id = make_product(stock=10)
        open_order = make_order([(product_id, 1)])
        taken = make_order([(product_id, 1)])
        make_order([(product_id, 1)], delivery_method="pickup-point")
        cancelled = make_order([(product_id, 1)])
        _accept(taken)
        current_domain.process(
            UpdateOrderStatus(order_id=cancelled, actor_id="admin-1", actor_role="admin", status="cancelled"),
            asynchronous=False,
        )

        page = queries.available_for_delivery("deliverer")
        assert [str(o.id) for o in page["items"]] == [open_order]

    def test_consumers_cannot_browse_jobs(self):
        with pytest.raises(AuthorizationError):
            queries.available_for_delivery("consumer")


class TestTransactionHistory:
    def test_stats_for_consumer(self, make_product, make_order):
        product_id = make_product(price=2.0, stock=20)
        first = make_order([(product_id, 1)])
        make_order([(product_id, 3)])
        current_domain.process(
            UpdateOrderStatus(order_id=first, actor_id="admin-1", actor_role="admin", status="cancelled"),
            asynchronous=False,
        )

        result = queries.transaction_history("consumer-001", "consumer")
        assert result["total"] == 2
        assert result["stats"]["total_transactions"] == 2
        assert result["stats"]["total_amount"] == 8.0
        assert result["stats"]["by_status"] == {"cancelled": 1, "pending": 1}

    def test_date_window(self, make_product, make_order):
        make_order([(make_product(), 1)])
        now = datetime.now(UTC)

        inside = queries.transaction_history("admin-1", "admin", start_date=now - timedelta(hours=1))
        assert inside["total"] == 1

        future = queries.transaction_history("admin-1", "admin", start_date=now + timedelta(hours=1))
        assert future["total"] == 0

        past = queries.transaction_history("admin-1", "admin", end_date=now - timedelta(hours=1))
        assert past["total"] == 0

    def test_naive_dates_are_treated_as_utc(self, make_product, make_order):
        make_order([(make_product(), 1)])
        naive = datetime.now(UTC).replace(tzinfo=None) - timedelta(hours=1)
        assert queries.transaction_history("admin-1", "admin", start_date=naive)["total"] == 1

    def test_admin_sees_everything(self, make_product, make_order):
        product_id = make_product(stock=10)
        make_order([(product_id, 1)])
        make_order([(product_id, 1)], consumer_id="consumer-002")
        assert queries.transaction_history("admin-1", "admin")["total"] == 2

    def test_page_stats_cover_the_page(self, make_product, make_order):
        product_id = make_product(price=1.0, stock=10)
        for _ in range(3):
            make_order([(product_id, 1)])
        result = queries.transaction_history("consumer-001", "consumer", page=1, limit=2)
        assert result["stats"]["total_transactions"] == 3
        assert result["stats"]["total_amount"] == 2.0


class TestDeliveryQueries:
    def test_get_delivery_as_deliverer(self, make_product, make_order):
        delivery_id = _accept(make_order([(make_product(), 1)]))
        delivery = delivery_queries.get_delivery(delivery_id, "driver-1", "deliverer")
        assert str(delivery.id) == delivery_id

    def test_get_delivery_as_order_consumer(self, make_product, make_order):
        delivery_id = _accept(make_order([(make_product(), 1)]))
        assert delivery_queries.get_delivery(delivery_id, "consumer-001", "consumer") is not None

    def test_other_deliverer_refused(self, make_product, make_order):
        delivery_id = _accept(make_order([(make_product(), 1)]))
        with pytest.raises(AuthorizationError):
            delivery_queries.get_delivery(delivery_id, "driver-2", "deliverer")

    def test_unknown_delivery(self):
        with pytest.raises(NotFound):
            delivery_queries.get_delivery("delivery-404", "admin-1", "admin")

    def test_deliveries_for_deliverer_with_status(self, make_product, make_order):
        product_id = make_product(stock=10)
        first = _accept(make_order([(product_id, 1)]))
        _accept(make_order([(product_id, 1)]))
        current_domain.process(
            UpdateDeliveryStatus(delivery_id=first, deliverer_id="driver-1", status="in-transit"),
            asynchronous=False,
        )
        assert delivery_queries.deliveries_for("driver-1", "deliverer")["total"] == 2
        in_transit = delivery_queries.deliveries_for("driver-1", "deliverer", status="in-transit")
        assert [str(d.id) for d in in_transit["items"]] == [first]

    def test_consumers_cannot_list_deliveries(self):
        with pytest.raises(AuthorizationError):
            delivery_queries.deliveries_for("consumer-001", "consumer")

    def test_deliverer_history_stats(self, make_product, make_order):
        product_id = make_product(stock=10)
        done = _accept(make_order([(product_id, 1)]))
        failed = _accept(make_order([(product_id, 1)]))
        _accept(make_order([(product_id, 1)]))
        current_domain.process(
            UpdateDeliveryStatus(delivery_id=done, deliverer_id="driver-1", status="delivered"),
            asynchronous=False,
        )
        current_domain.process(
            ReportDeliveryFailure(delivery_id=failed, deliverer_id="driver-1", reason="No answer"),
            asynchronous=False,
        )

        history = delivery_queries.deliverer_history("driver-1")
        assert len(history["deliveries"]) == 3
        assert history["stats"] == {"total": 3, "completed": 1, "in_progress": 1, "failed": 1}


class TestBeyondOnePage:
    def test_consumer_sees_every_order(self, make_product, make_order):
        product_id = make_product(stock=200)
        placed = [make_order([(product_id, 1)]) for _ in range(105)]

        orders = current_domain.repository_for(Order).for_consumer("consumer-001")
        assert len(orders) == 105
        assert str(orders[0].id) == placed[-1]

        page = queries.orders_for_consumer("consumer-001", page=11, limit=10)
        assert page["total"] == 105
        assert len(page["items"]) == 5

    def test_fresh_order_listed_after_many_closed_ones(self, make_product, make_order):
        product_id = make_product(stock=200)
        for _ in range(100):
            closed = make_order([(product_id, 1)])
            current_domain.process(
                UpdateOrderStatus(order_id=closed, actor_id="admin-1", actor_role="admin", status="cancelled"),
                asynchronous=False,
            )
        fresh = make_order([(product_id, 1)])

        available = current_domain.repository_for(Order).available_for_delivery()
        assert [str(o.id) for o in available] == [fresh]

    def test_deliverer_history_past_one_page(self, make_product, make_order):
        product_id = make_product(stock=200)
        for _ in range(101):
            _accept(make_order([(product_id, 1)]))

        assert len(current_domain.repository_for(Delivery).for_deliverer("driver-1")) == 101
        assert delivery_queries.deliverer_history("driver-1")["stats"]["total"] == 101
