"""Middleware that resolves the request identity from a bearer JWT."""

import logging

from django.contrib.auth.models import AnonymousUser
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed

from authentication.services import BlocklistUnavailable, user_for_token

from .exceptions import BLOCKLIST_UNAVAILABLE_MESSAGE, UNAUTHENTICATED_MESSAGE

logger = logging.getLogger(__name__)


def bearer_token(request) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""

    header = request.META.get("HTTP_AUTHORIZATION", "")
    if not header.startswith("Bearer "):
        return None
    return header.split(" ", 1)[1].strip() or None


class JWTAuthMiddleware(MiddlewareMixin):
    """Attach the token's user to ``request.user``.

    Requests without a bearer token continue anonymously, which is how the
    public read endpoints are served. A token that is present but invalid,
    expired, or revoked is rejected instead of silently downgrading to
    anonymous.
    """

    def process_request(self, request):  # type: ignore[override]
        token = bearer_token(request)
        if token is None:
            request.user = AnonymousUser()
            return None

        try:
            request.user, _ = user_for_token(token)
        except AuthenticationFailed as exc:
            logger.info("Rejected bearer token: %s", exc.detail)
            return JsonResponse({"data": None, "errors": [UNAUTHENTICATED_MESSAGE]}, status=status.HTTP_401_UNAUTHORIZED)
        except BlocklistUnavailable:
            logger.error("Token blocklist unavailable; failing closed")
            return JsonResponse(
                {"data": None, "errors": [BLOCKLIST_UNAVAILABLE_MESSAGE]},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return None


__all__ = ["JWTAuthMiddleware", "bearer_token"]
