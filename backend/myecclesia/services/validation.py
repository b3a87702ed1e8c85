"""
Validation helpers shared by the ticketing handlers.
"""

import re
from typing import Any, Optional

from myecclesia.core.exceptions import AuthorizationError, InvalidRequestError
from myecclesia.services.interfaces.payment_provider import CheckoutSession

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def require_field(value: Any, message: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRequestError(message)
    return value


def parse_quantity(raw: Optional[str]) -> int:
    """
    Quantity from provider metadata: leading integer, default 1, never
    below 1. "3" -> 3, "2.7" -> 2, "0" -> 1, "abc" -> 1.
    """
    if raw is None:
        return 1
    match = _LEADING_INT.match(str(raw))
    if not match:
        return 1
    return max(1, int(match.group(1)))


def session_metadata(session: CheckoutSession) -> tuple[str, str, int]:
    """Return (user_id, event_id, quantity) from a checkout session."""
    metadata = session.metadata or {}
    quantity = parse_quantity(metadata.get("quantity"))
    event_id = metadata.get("event_id")
    user_id = metadata.get("user_id")

    if not event_id:
        raise InvalidRequestError("Missing event_id in Stripe session metadata")
    if not user_id:
        raise InvalidRequestError("Missing user_id in Stripe session metadata")
    return user_id, event_id, quantity


def ensure_owner(owner_id: Optional[str], caller_id: str, message: str) -> None:
    if owner_id != caller_id:
        raise AuthorizationError(message)
