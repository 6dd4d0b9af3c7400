"""Product aggregate (CQRS) — catalogue entry and its stock counter.

Stock is only ever decremented by order creation and incremented by
cancellation compensation, both through the inventory ledger.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from marketplace.catalogue.events import (
    ProductAvailabilityChanged,
    ProductListed,
    ProductPriceChanged,
    StockReleased,
    StockReserved,
)
from marketplace.domain import marketplace
from marketplace.exceptions import InsufficientStock


@marketplace.aggregate
class Product:
    """Product aggregate root."""

    name: String(required=True, max_length=255)
    description: Text()
    producer_id: Identifier(required=True)
    price: Float(required=True, min_value=0.0)
    stock: Integer(default=0, min_value=0)
    unit: String(max_length=20, default="kg")
    is_available: Boolean(default=True)
    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(cls, producer_id, name, price, stock=0, unit="kg", description=None):
        """Put a new product on the marketplace."""
        now = datetime.now(UTC)
        product = cls(
            producer_id=producer_id,
            name=name,
            description=description,
            price=price,
            stock=stock,
            unit=unit,
            is_available=True,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductListed(
                product_id=str(product.id),
                producer_id=str(producer_id),
                name=name,
                price=price,
                stock=stock,
                listed_at=now,
            )
        )
        return product

    def change_price(self, new_price: float) -> None:
        if new_price is None or new_price < 0:
            raise ValidationError({"price": ["Price must be zero or positive"]})

        previous = self.price
        self.price = new_price
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ProductPriceChanged(
                product_id=str(self.id),
                previous_price=previous,
                new_price=new_price,
            )
        )

    def set_availability(self, is_available: bool) -> None:
        self.is_available = is_available
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ProductAvailabilityChanged(
                product_id=str(self.id),
                is_available=is_available,
            )
        )

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    def reserve_stock(self, quantity: int) -> int:
        """Take ``quantity`` units out of stock and return the remaining count."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if self.stock < quantity:
            raise InsufficientStock(
                {"stock": [f"Insufficient stock for {self.name}: {self.stock} available, {quantity} requested"]}
            )

        previous = self.stock
        self.stock = previous - quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockReserved(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
            )
        )
        return self.stock

    def release_stock(self, quantity: int) -> int:
        """Return ``quantity`` units to stock and return the new count."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        previous = self.stock
        self.stock = previous + quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockReleased(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
            )
        )
        return self.stock
