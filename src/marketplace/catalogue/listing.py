"""Product listing — commands and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.catalogue.product import Product
from marketplace.domain import marketplace


@marketplace.command(part_of="Product")
class ListProduct:
    producer_id: Identifier(required=True)
    name: String(required=True, max_length=255)
    description: Text()
    price: Float(required=True, min_value=0.0)
    stock: Integer(default=0, min_value=0)
    unit: String(max_length=20, default="kg")


@marketplace.command(part_of="Product")
class ChangeProductPrice:
    product_id: Identifier(required=True)
    price: Float(required=True, min_value=0.0)


@marketplace.command(part_of="Product")
class SetProductAvailability:
    product_id: Identifier(required=True)
    is_available: Boolean(required=True)


@marketplace.command_handler(part_of=Product)
class ProductListingHandler:
    @handle(ListProduct)
    def list_product(self, command):
        product = Product.create(
            producer_id=command.producer_id,
            name=command.name,
            description=command.description,
            price=command.price,
            stock=command.stock or 0,
            unit=command.unit or "kg",
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(ChangeProductPrice)
    def change_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_price(command.price)
        repo.add(product)

    @handle(SetProductAvailability)
    def set_availability(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.set_availability(command.is_available)
        repo.add(product)
