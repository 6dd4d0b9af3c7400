"""Marketplace bounded context — products, carts, orders and deliveries.

Connects producers, consumers and deliverers: consumers check out carts into
orders, stock is reserved against the catalogue, deliverers accept
home-delivery orders and their progress is mirrored back onto the order.
"""

import structlog
from protean.domain import Domain

from marketplace.utils.logging import configure_logging

# Configure logging for the application
configure_logging()

logger = structlog.get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
