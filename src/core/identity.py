"""Explicit identity for the service layer.

Views call ``resolve_actor`` and hand the result to service functions, which
never touch the request themselves and call ``require_actor`` before any
mutation.
"""

from typing import Any, Optional

from .authentication import authenticated_user
from .exceptions import AuthenticationRequired


def resolve_actor(request) -> Optional[Any]:
    """Return the authenticated user for a DRF or Django request, else None."""

    return authenticated_user(getattr(request, "_request", request))


def require_actor(actor):
    """Raise ``AuthenticationRequired`` unless an identity was resolved."""

    if actor is None or not getattr(actor, "is_authenticated", False):
        raise AuthenticationRequired()
    return actor


__all__ = ["resolve_actor", "require_actor"]
