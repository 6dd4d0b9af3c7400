"""Domain events for the Product aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Product")
class ProductListed:
    """A producer put a new product on the marketplace."""

    __version__ = 1

    product_id: Identifier(required=True)
    producer_id: Identifier(required=True)
    name: String(required=True)
    price: Float(required=True)
    stock: Integer(required=True)
    listed_at: DateTime(required=True)


@marketplace.event(part_of="Product")
class ProductPriceChanged:
    __version__ = 1

    product_id: Identifier(required=True)
    previous_price: Float(required=True)
    new_price: Float(required=True)


@marketplace.event(part_of="Product")
class ProductAvailabilityChanged:
    __version__ = 1

    product_id: Identifier(required=True)
    is_available: Boolean(required=True)


@marketplace.event(part_of="Product")
class StockReserved:
    """Stock was taken out of the product's count for an order."""

    __version__ = 1

    product_id: Identifier(required=True)
    quantity: Integer(required=True)
    previous_stock: Integer(required=True)
    new_stock: Integer(required=True)


@marketplace.event(part_of="Product")
class StockReleased:
    """Stock was returned to the product's count after a cancellation."""

    __version__ = 1

    product_id: Identifier(required=True)
    quantity: Integer(required=True)
    previous_stock: Integer(required=True)
    new_stock: Integer(required=True)
