"""Repository for the ShoppingCart aggregate."""

from protean.exceptions import ObjectNotFoundError

from marketplace.cart.cart import ShoppingCart
from marketplace.domain import marketplace


@marketplace.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def get_or_create(self, consumer_id) -> ShoppingCart:
        """Return the consumer's cart, or a new empty one that is persisted on its first change."""
        try:
            return self.get(str(consumer_id))
        except ObjectNotFoundError:
            return ShoppingCart.create(consumer_id=str(consumer_id))
