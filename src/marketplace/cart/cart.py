"""Shopping Cart aggregate (CQRS) — one cart per consumer.

The cart's identity is the consumer id, so a consumer can never own two
carts. ``total_amount`` is a projection over current product prices and is
recalculated after every mutation.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer

from marketplace.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartItemUpdated
from marketplace.domain import marketplace
from marketplace.exceptions import NotFound


@marketplace.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@marketplace.aggregate
class ShoppingCart:
    consumer_id = Identifier(identifier=True)
    items = HasMany(CartItem)
    total_amount = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def one_line_per_product(self):
        product_ids = [str(i.product_id) for i in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError({"items": ["A product can appear only once in a cart"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, consumer_id):
        now = datetime.now(UTC)
        return cls(
            consumer_id=consumer_id,
            total_amount=0.0,
            created_at=now,
            updated_at=now,
        )

    def _line_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity):
        """Add a product to the cart, merging with an existing line."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = self._line_for(product_id)
        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
            line_quantity = existing.quantity
        else:
            self.add_items(CartItem(product_id=product_id, quantity=quantity, added_at=now))
            line_quantity = quantity

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                consumer_id=str(self.consumer_id),
                product_id=str(product_id),
                quantity=quantity,
                line_quantity=line_quantity,
            )
        )

    def update_item(self, product_id, quantity):
        """Overwrite a line's quantity. A quantity of zero or less removes the line."""
        item = self._line_for(product_id)
        if item is None:
            raise NotFound({"product_id": [f"Product {product_id} is not in the cart"]})

        if quantity <= 0:
            self.remove_item(product_id)
            return

        previous = item.quantity
        item.quantity = quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartItemUpdated(
                consumer_id=str(self.consumer_id),
                product_id=str(product_id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id):
        """Remove a product's line. Removing an absent product is a no-op."""
        item = self._line_for(product_id)
        if item is None:
            return

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartItemRemoved(
                consumer_id=str(self.consumer_id),
                product_id=str(product_id),
            )
        )

    def clear(self):
        removed = list(self.items)
        for item in removed:
            self.remove_items(item)
        self.total_amount = 0.0
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartCleared(
                consumer_id=str(self.consumer_id),
                items_removed=len(removed),
            )
        )

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    def recalculate_total(self, prices: dict[str, float]) -> float:
        """Sum price x quantity over the lines. Lines without a known price count as 0."""
        total = 0.0
        for item in self.items:
            price = prices.get(str(item.product_id))
            if price is not None:
                total += price * item.quantity
        self.total_amount = round(total, 2)
        return self.total_amount

    def lines(self) -> list[dict]:
        return [{"product_id": str(i.product_id), "quantity": i.quantity} for i in self.items]
