"""Repository for the Order aggregate."""

from protean.exceptions import InvalidOperationError

from marketplace.domain import marketplace
from marketplace.order.order import ASSIGNABLE_STATES, DeliveryMethod, Order, generate_order_number

ORDER_NUMBER_ATTEMPTS = 20


def _newest_first(query) -> list[Order]:
    """Evaluate ``query`` newest first, past the default page size."""
    return query.order_by("-created_at").limit(None).all().items


@marketplace.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number: str) -> Order | None:
        results = self._dao.query.filter(order_number=order_number).all().items
        return results[0] if results else None

    def next_order_number(self, now=None) -> str:
        """Draw order numbers until one is not taken yet."""
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            number = generate_order_number(now)
            if self.find_by_number(number) is None:
                return number
        raise InvalidOperationError({"order_number": ["Could not allocate a free order number"]})

    def for_consumer(self, consumer_id) -> list[Order]:
        return _newest_first(self._dao.query.filter(consumer_id=str(consumer_id)))

    def for_deliverer(self, deliverer_id) -> list[Order]:
        return _newest_first(self._dao.query.filter(deliverer_id=str(deliverer_id)))

    def for_producer(self, producer_id) -> list[Order]:
        """Orders containing at least one line sold by ``producer_id``."""
        producer_id = str(producer_id)
        return [o for o in self.everything() if producer_id in o.producer_ids()]

    def everything(self) -> list[Order]:
        return _newest_first(self._dao.query)

    def available_for_delivery(self) -> list[Order]:
        """Unassigned home-delivery orders that a deliverer can still accept."""
        return _newest_first(
            self._dao.query.filter(
                delivery_method=DeliveryMethod.HOME_DELIVERY.value,
                status__in=[s.value for s in ASSIGNABLE_STATES],
                deliverer_id__isnull=True,
            )
        )
