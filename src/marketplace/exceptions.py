"""Marketplace error taxonomy.

Every error carries a stable ``kind`` that the HTTP edge reports verbatim.
Errors build on Protean's exception hierarchy so that field validation raised
by Protean itself lands in the same envelope.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class NotFound(ObjectNotFoundError):
    """An order, delivery or cart line does not exist."""

    kind = "NotFound"


class ProductNotFound(NotFound):
    kind = "ProductNotFound"


class InsufficientStock(ValidationError):
    """Requested quantity exceeds the product's available stock."""

    kind = "InsufficientStock"


class InvalidTransition(ValidationError):
    """The requested status change is not allowed from the current status."""

    kind = "InvalidTransition"


class AlreadyAssigned(InvalidOperationError):
    """The order already has a deliverer or a delivery."""

    kind = "AlreadyAssigned"


class AuthorizationError(InvalidOperationError):
    """The acting user's role or identity does not permit the operation."""

    kind = "AuthorizationError"


def error_kind(exc: Exception) -> str:
    """Return the stable kind for any marketplace or Protean error."""
    kind = getattr(exc, "kind", None)
    if kind:
        return kind
    if isinstance(exc, ObjectNotFoundError):
        return "NotFound"
    return "ValidationError"


def error_message(exc: Exception) -> str:
    """Flatten an exception's field messages into one human readable line."""
    messages = getattr(exc, "messages", None)
    if isinstance(messages, str):
        return messages
    if not isinstance(messages, dict):
        return str(exc)

    parts = []
    for value in messages.values():
        if isinstance(value, (list, tuple)):
            parts.extend(str(v) for v in value)
        else:
            parts.append(str(value))
    return "; ".join(parts) if parts else str(exc)
