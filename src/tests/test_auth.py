"""Tests for the identity provider endpoints (register, login, refresh, logout, me)."""

from __future__ import annotations

import time
from unittest import mock

import jwt
from django.conf import settings
from django.test import TestCase
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.test import APIClient

from authentication import services
from authentication.passwords import hash_password, verify_password
from authentication.services import BlocklistUnavailable, TokenService
from core.identity import resolve_actor
from tests.utils import FakeRedisMixin, create_user


class AuthFlowTests(FakeRedisMixin, TestCase):
    """End-to-end tests covering auth endpoints and the envelope shape."""

    @classmethod
    def setUpTestData(cls):
        cls.password = "StrongPass123"
        cls.user = create_user("user@example.com", cls.password, name="Ada")

    def setUp(self):
        self.api_client: APIClient = APIClient()

    def _login(self) -> dict:
        return self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": self.password},
            format="json",
        ).json()["data"]

    def test_register_success(self):
        """Successful registration returns profile and envelope."""
        payload = {
            "email": "new@example.com",
            "password": "NewPass123!",
            "repeat_password": "NewPass123!",
            "name": "New Author",
        }
        response = self.api_client.post("/auth/register/", payload, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(body["errors"], [])
        self.assertEqual(body["data"]["email"], payload["email"])
        self.assertEqual(body["data"]["name"], "New Author")

    def test_register_password_mismatch(self):
        """Mismatched passwords yield a field-scoped 400."""
        payload = {
            "email": "new2@example.com",
            "password": "Password123",
            "repeat_password": "Mismatch123",
        }
        response = self.api_client.post("/auth/register/", payload, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertIsNone(body["data"])
        self.assertIn("repeat_password", [error["field"] for error in body["errors"]])

    def test_register_duplicate_email(self):
        response = self.api_client.post(
            "/auth/register/",
            {"email": "USER@example.com", "password": "Password123", "repeat_password": "Password123"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "email")

    def test_login_success_returns_tokens(self):
        """Valid credentials return access and refresh tokens."""
        response = self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": self.password},
            format="json",
        )
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertIn("access", body["data"])
        self.assertIn("refresh", body["data"])
        self.assertEqual(body["data"]["user"]["email"], self.user.email)
        self.assertEqual(body["errors"], [])

    def test_login_invalid_credentials_401(self):
        """Bad password returns 401 with null data."""
        response = self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": "wrongpass"},
            format="json",
        )
        body = response.json()

        self.assertEqual(response.status_code, 401)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_login_inactive_user_401(self):
        """Inactive user cannot log in and receives 401."""
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

        response = self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": self.password},
            format="json",
        )

        self.assertEqual(response.status_code, 401)

    def test_refresh_rotates_tokens(self):
        """Refresh issues a new pair and revokes the refresh token it consumed."""
        tokens = self._login()

        response = self.api_client.post("/auth/refresh/", {"refresh": tokens["refresh"]}, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertIn("access", body["data"])
        self.assertNotEqual(body["data"]["refresh"], tokens["refresh"])

        replay = self.api_client.post("/auth/refresh/", {"refresh": tokens["refresh"]}, format="json")
        self.assertEqual(replay.status_code, 401)

    def test_refresh_with_access_token_rejected(self):
        """Providing an access token to refresh endpoint returns 401."""
        tokens = self._login()

        response = self.api_client.post("/auth/refresh/", {"refresh": tokens["access"]}, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 401)
        self.assertIsNone(body["data"])

    def test_logout_blocklists_token(self):
        """Logout blocklists current access token causing subsequent 401."""
        tokens = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        logout_response = self.api_client.post("/auth/logout/", {"refresh": tokens["refresh"]}, format="json")
        self.assertEqual(logout_response.status_code, 204)

        me_response = self.api_client.get("/auth/me/")
        self.assertEqual(me_response.status_code, 401)

        self.api_client.credentials()
        refresh_response = self.api_client.post("/auth/refresh/", {"refresh": tokens["refresh"]}, format="json")
        self.assertEqual(refresh_response.status_code, 401)

    def test_logout_requires_authentication(self):
        response = self.api_client.post("/auth/logout/")
        self.assertEqual(response.status_code, 401)

    def test_me_returns_and_updates_profile(self):
        tokens = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        me = self.api_client.get("/auth/me/").json()
        self.assertEqual(me["data"]["id"], str(self.user.id))

        response = self.api_client.patch("/auth/me/", {"name": "Ada L."}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["name"], "Ada L.")

    def test_me_rejects_email_change(self):
        tokens = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        response = self.api_client.patch("/auth/me/", {"email": "other@example.com"}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_expired_access_token_rejected(self):
        now = int(time.time())
        payload = {
            "sub": str(self.user.id),
            "jti": "expired",
            "exp": now - 10,
            "iat": now - 100,
            "type": "access",
        }
        token = jwt.encode(payload, settings.SECRET_KEY, algorithm=TokenService.ALGORITHM)
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        response = self.api_client.get("/auth/me/")
        self.assertEqual(response.status_code, 401)

    def test_blocklist_outage_fails_closed(self):
        tokens = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        with mock.patch.object(TokenService, "is_token_blocked", side_effect=BlocklistUnavailable("down")):
            response = self.api_client.get("/auth/me/")

        self.assertEqual(response.status_code, 503)
        self.assertIsNone(response.json()["data"])

    def test_anonymous_request_resolves_no_actor(self):
        request = self.api_client.get("/articles/").wsgi_request
        self.assertIsNone(resolve_actor(request))


class IdentityServiceTests(FakeRedisMixin, TestCase):
    """Service-level checks for credentials and token lifecycles."""

    @classmethod
    def setUpTestData(cls):
        cls.user = create_user("Writer@Example.com", "StrongPass123")

    def test_authenticate_is_case_insensitive_on_email(self):
        self.assertEqual(services.authenticate("writer@example.com", "StrongPass123"), self.user)

    def test_authenticate_rejects_wrong_password(self):
        with self.assertRaises(AuthenticationFailed):
            services.authenticate("writer@example.com", "nope")

    def test_password_helpers(self):
        digest = hash_password("s3cret-pass")

        self.assertTrue(verify_password(digest, "s3cret-pass"))
        self.assertFalse(verify_password(digest, "other"))
        self.assertFalse(verify_password("", "s3cret-pass"))
        self.assertFalse(verify_password("not-a-bcrypt-hash", "s3cret-pass"))

    def test_token_lifetimes_follow_settings(self):
        tokens = services.TokenService.issue(self.user)
        access = services.TokenService.decode_token(tokens.access, expected_type="access")
        refresh = services.TokenService.decode_token(tokens.refresh, expected_type="refresh")

        self.assertEqual(access["exp"] - access["iat"], settings.ACCESS_TOKEN_TTL_MINUTES * 60)
        self.assertEqual(refresh["exp"] - refresh["iat"], settings.REFRESH_TOKEN_TTL_HOURS * 3600)
        self.assertEqual(access["sub"], str(self.user.pk))

    def test_user_for_token_rejects_inactive_user(self):
        tokens = services.TokenService.issue(self.user)
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

        with self.assertRaises(AuthenticationFailed):
            services.user_for_token(tokens.access)

    def test_end_session_revokes_both_tokens(self):
        tokens = services.TokenService.issue(self.user)

        services.end_session(tokens.access, tokens.refresh)

        with self.assertRaises(AuthenticationFailed):
            services.user_for_token(tokens.access)
        with self.assertRaises(AuthenticationFailed):
            services.rotate_refresh(tokens.refresh)

    def test_tampered_token_rejected(self):
        token = services.TokenService.issue(self.user).access
        with self.assertRaises(AuthenticationFailed):
            services.TokenService.decode_token(token[:-2] + "xx")
