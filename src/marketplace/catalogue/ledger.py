"""Inventory ledger — reserve and release product stock.

Each reservation is a compare-and-swap: the product is read, the stock
condition is checked on that snapshot, and the write is version-checked by
the repository. If another writer changed the product in between, the write
fails with ``ExpectedVersionError`` and nothing is decremented.

Multi-line requests are pre-checked as a whole before any stock moves. Lines
that were already reserved when a later line fails are released again before
the error propagates.
"""

from collections import OrderedDict

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.catalogue.product import Product
from marketplace.exceptions import InsufficientStock, ProductNotFound

logger = structlog.get_logger(__name__)


def get_product(product_id) -> Product:
    """Load a product or raise ``ProductNotFound``."""
    try:
        return current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError:
        raise ProductNotFound({"product_id": [f"Product {product_id} not found"]}) from None


def find_product(product_id) -> Product | None:
    """Load a product, returning None for unknown or deleted products."""
    try:
        return current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError:
        return None


def _combine(lines) -> "OrderedDict[str, int]":
    """Sum requested quantities per product, preserving first-seen order."""
    combined = OrderedDict()
    for line in lines:
        product_id = str(line["product_id"])
        combined[product_id] = combined.get(product_id, 0) + int(line["quantity"])
    return combined


def check_availability(lines) -> dict[str, Product]:
    """Verify every line resolves and has enough stock. Nothing is mutated.

    Returns the resolved products keyed by id.
    """
    products = {}
    for product_id, quantity in _combine(lines).items():
        product = get_product(product_id)
        if product.stock < quantity:
            raise InsufficientStock(
                {"stock": [f"Insufficient stock for {product.name}: {product.stock} available, {quantity} requested"]}
            )
        products[product_id] = product
    return products


def reserve(product_id, quantity: int) -> int:
    """Decrement stock by ``quantity`` and return the new stock level."""
    repo = current_domain.repository_for(Product)
    product = get_product(product_id)
    new_stock = product.reserve_stock(quantity)
    try:
        repo.add(product)
    except ExpectedVersionError:
        logger.warning(
            "Concurrent stock update lost the race",
            product_id=str(product_id),
            quantity=quantity,
        )
        raise

    logger.info("Stock reserved", product_id=str(product_id), quantity=quantity, stock=new_stock)
    return new_stock


def release(product_id, quantity: int) -> int:
    """Increment stock by ``quantity`` and return the new stock level."""
    repo = current_domain.repository_for(Product)
    product = get_product(product_id)
    new_stock = product.release_stock(quantity)
    repo.add(product)

    logger.info("Stock released", product_id=str(product_id), quantity=quantity, stock=new_stock)
    return new_stock


def reserve_lines(lines) -> None:
    """Reserve every line, undoing earlier reservations if a later one fails."""
    reserved = []
    try:
        for product_id, quantity in _combine(lines).items():
            reserve(product_id, quantity)
            reserved.append((product_id, quantity))
    except Exception:
        for product_id, quantity in reversed(reserved):
            release(product_id, quantity)
        logger.warning(
            "Partial reservation compensated",
            released=[product_id for product_id, _ in reserved],
        )
        raise


def release_lines(lines) -> None:
    """Return every line's quantity to stock. Products that no longer exist are skipped."""
    for product_id, quantity in _combine(lines).items():
        if find_product(product_id) is None:
            logger.warning("Skipping stock release for missing product", product_id=product_id, quantity=quantity)
            continue
        release(product_id, quantity)
