"""Shared helpers for tests (user creation, authenticated clients, fake Redis)."""

from __future__ import annotations

from typing import Dict
from unittest import mock

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from authentication.passwords import hash_password
from authentication.services import TokenService
from categories.models import Category
from scripts.management.commands.seed_content import create_seed_categories

User = get_user_model()


class FakeRedis:
    """Minimal Redis stub supporting the commands used by TokenService."""

    def __init__(self):
        self._store: Dict[str, str] = {}

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        """Mimic Redis SETEX; TTL is ignored in tests, value stored in-memory."""
        self._store[key] = value

    def get(self, key: str):
        return self._store.get(key)


class FakeRedisMixin:
    """Patch the token blocklist onto an in-memory FakeRedis for a test class."""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.fake_redis = FakeRedis()
        cls.redis_patcher = mock.patch("authentication.services.get_redis_client", return_value=cls.fake_redis)
        cls.redis_patcher.start()

    @classmethod
    def tearDownClass(cls):
        cls.redis_patcher.stop()
        super().tearDownClass()


def seed_categories() -> dict[str, Category]:
    """Create the starter category tree used by the seed command."""

    return create_seed_categories()


def create_user(email: str, password: str = "StrongPass123", **extra):
    """Create a user with a bcrypt-hashed password for tests."""

    return User.objects.create(
        email=email,
        password_hash=hash_password(password),
        **extra,
    )


def auth_client(user) -> APIClient:
    """Return an APIClient authenticated with a fresh access token."""

    token = TokenService.issue(user).access
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client
