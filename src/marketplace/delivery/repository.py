"""Repository for the Delivery aggregate."""

from marketplace.delivery.delivery import Delivery
from marketplace.domain import marketplace


def _newest_first(query) -> list[Delivery]:
    return query.order_by("-created_at").limit(None).all().items


@marketplace.repository(part_of=Delivery)
class DeliveryRepository:
    def for_order(self, order_id) -> Delivery | None:
        """The delivery opened for ``order_id``, if any. There is at most one."""
        results = self._dao.query.filter(order_id=str(order_id)).all().items
        return results[0] if results else None

    def for_deliverer(self, deliverer_id) -> list[Delivery]:
        return _newest_first(self._dao.query.filter(deliverer_id=str(deliverer_id)))

    def everything(self) -> list[Delivery]:
        return _newest_first(self._dao.query)
