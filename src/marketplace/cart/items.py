"""Cart item management — commands and handler.

Every mutation re-prices the cart from current product prices before it is
persisted.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.catalogue.ledger import find_product, get_product
from marketplace.domain import marketplace


@marketplace.command(part_of="ShoppingCart")
class AddToCart:
    consumer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@marketplace.command(part_of="ShoppingCart")
class UpdateCartItem:
    consumer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@marketplace.command(part_of="ShoppingCart")
class RemoveFromCart:
    consumer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@marketplace.command(part_of="ShoppingCart")
class ClearCart:
    consumer_id = Identifier(required=True)


def reprice(cart: ShoppingCart) -> float:
    """Recalculate the cart total from the products' current prices."""
    prices = {}
    for item in cart.items:
        product = find_product(item.product_id)
        if product is not None:
            prices[str(item.product_id)] = product.price
    return cart.recalculate_total(prices)


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        get_product(command.product_id)

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.consumer_id)
        cart.add_item(product_id=command.product_id, quantity=command.quantity)
        reprice(cart)
        repo.add(cart)
        return cart.total_amount

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.consumer_id)
        cart.update_item(product_id=command.product_id, quantity=command.quantity)
        reprice(cart)
        repo.add(cart)
        return cart.total_amount

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.consumer_id)
        cart.remove_item(product_id=command.product_id)
        reprice(cart)
        repo.add(cart)
        return cart.total_amount

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.consumer_id)
        cart.clear()
        repo.add(cart)
        return cart.total_amount


def get_cart(consumer_id) -> ShoppingCart:
    """Load (or lazily create) a consumer's cart with a freshly computed total."""
    repo = current_domain.repository_for(ShoppingCart)
    cart = repo.get_or_create(consumer_id)
    previous_total = cart.total_amount
    if reprice(cart) != previous_total:
        repo.add(cart)
    return cart
