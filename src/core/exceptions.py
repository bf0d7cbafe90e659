"""Domain error taxonomy and the DRF exception handler that renders it.

Services raise the exceptions below; the handler turns every failure into the
``{"data": null, "errors": [...]}`` envelope. Field-scoped validation errors
are rendered as ``{"field": ..., "message": ...}`` objects so the form layer
can place each message next to its input.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from django.conf import settings
from django.db import DatabaseError, IntegrityError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from authentication.services import BlocklistUnavailable

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again."
UNAUTHENTICATED_MESSAGE = (
    "Authentication credentials were not provided or are invalid, "
    "token revoked, or user is inactive."
)
BLOCKLIST_UNAVAILABLE_MESSAGE = "Authentication service unavailable (blocklist)."
FORBIDDEN_MESSAGE = "You do not have permission to perform this action on this resource."


class ValidationError(exceptions.ValidationError):
    """One or more field-level contract violations.

    ``errors`` maps a field name to a single human readable message.
    """

    def __init__(self, errors: Mapping[str, str]):
        self.errors = dict(errors)
        super().__init__({field: [message] for field, message in self.errors.items()}, code="invalid")

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls({field: message})

    @property
    def fields(self) -> list[str]:
        return list(self.errors)


class NotFoundError(exceptions.NotFound):
    """A referenced id (category, parent, article) does not exist."""


class AuthorizationError(exceptions.PermissionDenied):
    """The requester may not perform this mutation."""


class AuthenticationRequired(AuthorizationError):
    """No authenticated identity was supplied for a required-auth operation."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required."
    default_code = "not_authenticated"


class OwnershipError(AuthorizationError):
    """Authenticated, but not the owner of the resource being mutated."""

    default_detail = "You can only modify your own content."
    default_code = "not_owner"


class StorageError(exceptions.APIException):
    """Unexpected persistence failure; details never leave the server."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = UNAVAILABLE_MESSAGE
    default_code = "storage_error"


@contextmanager
def storage_boundary(operation: str, unique_fields: Mapping[str, tuple[str, str]] | None = None) -> Iterator[None]:
    """Translate database failures raised inside a service operation.

    ``unique_fields`` maps a storage constraint name to ``(field, message)``;
    an ``IntegrityError`` naming that constraint becomes a field-scoped
    ``ValidationError`` since the storage constraint is the authoritative
    uniqueness guard. Anything else becomes a ``StorageError``.
    """

    try:
        yield
    except IntegrityError as exc:
        for constraint, (field, message) in (unique_fields or {}).items():
            if constraint in str(exc):
                logger.warning("%s rejected by constraint %s", operation, constraint)
                raise ValidationError.for_field(field, message) from exc
        logger.exception("Integrity failure during %s", operation)
        raise StorageError() from exc
    except DatabaseError as exc:
        logger.exception("Storage failure during %s", operation)
        raise StorageError() from exc


def _normalize_errors(payload: Any) -> list[Any]:
    """Convert DRF's response.data into a list for the envelope."""

    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and "detail" in payload:
        # Common DRF pattern: {"detail": "..."}
        return [payload["detail"]]
    if isinstance(payload, dict):
        return _field_errors(payload)
    return [payload]


def _field_errors(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Flatten ``{"field": ["msg", ...]}`` into ``[{"field", "message"}, ...]``."""

    errors = []
    for field, messages in payload.items():
        if not isinstance(messages, list):
            messages = [messages]
        for message in messages:
            errors.append({"field": field, "message": str(message)})
    return errors


def custom_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Wrap DRF errors in `{ "data": null, "errors": [...] }` shape.

    - Uses DRF's default handler to produce the base response.
    - Normalizes generic auth/permission messages; domain authorization errors
      keep their specific wording.
    - Optionally exposes more detailed auth errors when DEBUG_AUTH_ERRORS is enabled.
    """

    if isinstance(exc, BlocklistUnavailable):
        return Response(
            {"data": None, "errors": [BLOCKLIST_UNAVAILABLE_MESSAGE]},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    # Raw database errors that escaped a storage_boundary.
    if isinstance(exc, DatabaseError):
        logger.exception("Unhandled storage failure in %s", context.get("view").__class__.__name__)
        return Response(
            {"data": None, "errors": [UNAVAILABLE_MESSAGE]},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    response = drf_exception_handler(exc, context)

    if response is None:
        return response

    if isinstance(exc, (exceptions.AuthenticationFailed, exceptions.NotAuthenticated, AuthenticationRequired)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    if response.status_code >= 400:
        base_errors = response.data

        if response.status_code == status.HTTP_401_UNAUTHORIZED:
            if getattr(settings, "DEBUG_AUTH_ERRORS", False) or isinstance(exc, AuthenticationRequired):
                errors = _normalize_errors(base_errors)
            else:
                errors = [UNAUTHENTICATED_MESSAGE]
        elif response.status_code == status.HTTP_403_FORBIDDEN and not isinstance(exc, AuthorizationError):
            errors = [FORBIDDEN_MESSAGE]
        else:
            errors = _normalize_errors(base_errors)

        response.data = {"data": None, "errors": errors}

    return response


__all__ = [
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "AuthenticationRequired",
    "OwnershipError",
    "StorageError",
    "storage_boundary",
    "custom_exception_handler",
]
