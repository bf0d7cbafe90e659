"""Authentication endpoints: register, login, refresh, logout, and profile.

These views only move data between HTTP and ``authentication.services``;
token checks and revocation happen there.
"""

import logging
from dataclasses import asdict
from typing import Any

from rest_framework import status
from rest_framework.response import Response

from core.identity import require_actor, resolve_actor
from core.middleware import bearer_token
from core.response import BaseAPIView, api_response
from . import services
from .serializers import (
    LoginSerializer,
    LogoutSerializer,
    ProfileUpdateSerializer,
    RefreshSerializer,
    RegisterSerializer,
    UserDetailSerializer,
)

logger = logging.getLogger(__name__)


class PublicAuthView(BaseAPIView):
    """Endpoints reachable without a bearer token."""

    permission_classes: list[Any] = []


class RegisterView(PublicAuthView):
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Registered user %s", user.pk)
        return api_response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)


class LoginView(PublicAuthView):
    def post(self, request):
        """Check credentials and issue an access/refresh pair."""
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]
        tokens = services.TokenService.issue(user)
        logger.info("User %s logged in", user.pk)
        return api_response({**asdict(tokens), "user": UserDetailSerializer(user).data})


class RefreshView(PublicAuthView):
    def post(self, request):
        """Rotate a refresh token: the old one is revoked, a new pair is issued."""
        serializer = RefreshSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tokens = services.rotate_refresh(serializer.validated_data.get("refresh"))
        return api_response(asdict(tokens))


class LogoutView(PublicAuthView):
    def post(self, request):
        """Revoke the bearer access token and an optional refresh token."""
        actor = require_actor(resolve_actor(request))
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.end_session(bearer_token(request), serializer.validated_data.get("refresh"))
        logger.info("User %s logged out", actor.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(PublicAuthView):
    def get(self, request):
        user = require_actor(resolve_actor(request))
        return api_response(UserDetailSerializer(user).data)

    def patch(self, request):
        """Update the display name of the current user."""
        user = require_actor(resolve_actor(request))
        serializer = ProfileUpdateSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return api_response(UserDetailSerializer(user).data)
