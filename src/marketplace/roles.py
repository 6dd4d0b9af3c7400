"""Actor roles as supplied by the auth layer."""

from enum import Enum

from marketplace.exceptions import AuthorizationError


class Role(Enum):
    CONSUMER = "consumer"
    PRODUCER = "producer"
    DELIVERER = "deliverer"
    ADMIN = "admin"


_ALIASES = {
    "consommateur": Role.CONSUMER,
    "producteur": Role.PRODUCER,
    "livreur": Role.DELIVERER,
}


def normalize_role(value: str | None) -> str:
    """Map a raw role (including the French aliases) onto a ``Role`` value."""
    raw = (value or "").strip().lower()
    if raw in _ALIASES:
        return _ALIASES[raw].value
    try:
        return Role(raw).value
    except ValueError:
        raise AuthorizationError({"role": [f"Unknown role: {value}"]}) from None


def require_role(role: str, *allowed: Role) -> None:
    """Raise ``AuthorizationError`` unless ``role`` is one of ``allowed``."""
    if role not in {r.value for r in allowed}:
        raise AuthorizationError({"role": [f"Role {role} is not allowed to perform this action"]})
