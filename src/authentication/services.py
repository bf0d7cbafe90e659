"""Identity provider: credential checks, JWT sessions, and the revocation list.

Access and refresh tokens are HS256 JWTs signed with ``SECRET_KEY``. Each
carries a ``jti``; revoking a token stores that id in Redis until the token
would have expired anyway. If Redis cannot be reached the check fails
closed with ``BlocklistUnavailable``.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.exceptions import AuthenticationFailed

from core.redis_client import get_redis_client

logger = logging.getLogger(__name__)


class BlocklistUnavailable(Exception):
    """Raised when Redis blocklist cannot be checked (fail-closed)."""


@dataclass(frozen=True)
class TokenPair:
    access: str
    refresh: str


class TokenService:
    """Sign, verify, and revoke the bearer tokens that identify authors."""

    ALGORITHM = "HS256"
    BLOCKLIST_PREFIX = "blocklist:token:"

    @staticmethod
    def ttl(token_type: str) -> timedelta:
        if token_type == "refresh":
            return timedelta(hours=settings.REFRESH_TOKEN_TTL_HOURS)
        return timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES)

    @classmethod
    def issue(cls, user) -> TokenPair:
        """Sign a fresh access/refresh pair for ``user``."""

        now = datetime.now(timezone.utc)
        return TokenPair(access=cls._sign(user, "access", now), refresh=cls._sign(user, "refresh", now))

    @classmethod
    def _sign(cls, user, token_type: str, issued_at: datetime) -> str:
        payload = {
            "sub": str(user.pk),
            "email": user.email,
            "jti": uuid.uuid4().hex,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + cls.ttl(token_type)).timestamp()),
            "type": token_type,
        }
        return jwt.encode(payload, settings.SECRET_KEY, algorithm=cls.ALGORITHM)

    @classmethod
    def decode_token(cls, token: Optional[str], expected_type: str | None = None) -> dict[str, Any]:
        """Verify signature, expiry, and (optionally) the token type."""

        if not token:
            raise AuthenticationFailed("Token required")
        try:
            payload = jwt.decode(
                token,
                settings.SECRET_KEY,
                algorithms=[cls.ALGORITHM],
                options={"require": ["exp", "jti", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationFailed("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationFailed("Invalid token") from exc

        if expected_type and payload.get("type") != expected_type:
            raise AuthenticationFailed("Invalid token type")
        return payload

    @classmethod
    def revoke(cls, payload: dict[str, Any]) -> None:
        """Blocklist a decoded token until its own expiry."""

        ttl_seconds = max(1, int(payload["exp"]) - int(time.time()))
        try:
            get_redis_client().setex(f"{cls.BLOCKLIST_PREFIX}{payload['jti']}", ttl_seconds, "1")
        except Exception as exc:  # pragma: no cover - network failure
            raise BlocklistUnavailable("Redis unavailable while blocklisting") from exc

    @classmethod
    def is_token_blocked(cls, jti: str) -> bool:
        try:
            return get_redis_client().get(f"{cls.BLOCKLIST_PREFIX}{jti}") is not None
        except Exception as exc:  # pragma: no cover - network failure
            raise BlocklistUnavailable("Redis unavailable while checking blocklist") from exc


def user_for_token(token: Optional[str], expected_type: str = "access"):
    """Resolve a bearer token to an active user or raise ``AuthenticationFailed``."""

    payload = TokenService.decode_token(token, expected_type=expected_type)
    if TokenService.is_token_blocked(payload["jti"]):
        raise AuthenticationFailed("Token revoked")
    return _active_user(payload["sub"]), payload


def authenticate(email: str, password: str):
    """Return the active user matching the credentials."""

    User = get_user_model()
    try:
        user = User.objects.get_by_email(email)
    except User.DoesNotExist:
        raise AuthenticationFailed("Invalid credentials")
    if not user.check_password(password):
        logger.info("Failed login for %s", email)
        raise AuthenticationFailed("Invalid credentials")
    if not user.is_active:
        raise AuthenticationFailed("User is inactive")
    return user


def rotate_refresh(refresh_token: Optional[str]) -> TokenPair:
    """Trade a refresh token for a new pair; the presented token is revoked."""

    user, payload = user_for_token(refresh_token, expected_type="refresh")
    TokenService.revoke(payload)
    logger.info("Rotated refresh token for %s", user.pk)
    return TokenService.issue(user)


def end_session(access_token: Optional[str], refresh_token: Optional[str] = None) -> None:
    """Revoke the current access token and, when supplied, its refresh token."""

    TokenService.revoke(TokenService.decode_token(access_token, expected_type="access"))
    if refresh_token:
        TokenService.revoke(TokenService.decode_token(refresh_token, expected_type="refresh"))


def _active_user(user_id):
    User = get_user_model()
    try:
        user = User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, DjangoValidationError):
        raise AuthenticationFailed("User not found or inactive")
    if not user.is_active:
        raise AuthenticationFailed("User not found or inactive")
    return user


__all__ = [
    "BlocklistUnavailable",
    "TokenPair",
    "TokenService",
    "user_for_token",
    "authenticate",
    "rotate_refresh",
    "end_session",
]
