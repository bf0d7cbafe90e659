"""DRF authentication class that trusts the identity set by ``JWTAuthMiddleware``.

This module is named in ``REST_FRAMEWORK["DEFAULT_AUTHENTICATION_CLASSES"]``
and is loaded while DRF itself is importing, so it must not import
``core.exceptions`` (which imports ``rest_framework.views``). Identity helpers
for views and services live in ``core.identity``.
"""

from typing import Any, Optional, Tuple

from django.contrib.auth.models import AnonymousUser
from rest_framework.authentication import BaseAuthentication


class MiddlewareUserAuthentication(BaseAuthentication):
    """Expose ``request._request.user`` (set by middleware) to DRF.

    This authenticator does *not* perform any credential parsing or token
    decoding. If the user is anonymous or missing, authentication is skipped.
    """

    def authenticate(self, request) -> Optional[Tuple[Any, None]]:
        django_request = getattr(request, "_request", None)
        if django_request is None:
            return None
        user = authenticated_user(django_request)
        if user is None:
            return None
        return user, None

    def authenticate_header(self, request) -> str:
        return 'Bearer realm="api"'


def authenticated_user(request) -> Optional[Any]:
    """The user attached to a Django request, or None when anonymous."""

    user = getattr(request, "user", None)
    if user is None or isinstance(user, AnonymousUser):
        return None
    if not getattr(user, "is_authenticated", False):
        return None
    return user


__all__ = ["MiddlewareUserAuthentication", "authenticated_user"]
