"""Author accounts: the identities that own articles and edit categories."""

import uuid
from typing import ClassVar, Optional

from django.contrib.auth.models import AbstractBaseUser
from django.db import models

from .managers import UserManager
from .passwords import hash_password, verify_password


class User(AbstractBaseUser):
    """Author identified by email.

    Credentials live in ``password_hash`` as a bcrypt digest; the inherited
    ``password`` column stays unused.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True)
    password_hash = models.CharField(max_length=128)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS: ClassVar[list[str]] = []

    objects = UserManager()

    class Meta:
        ordering = ["-date_joined"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.display_name

    @property
    def display_name(self) -> str:
        """Name shown on bylines; falls back to the mailbox part of the email."""
        return self.name or self.email.split("@", 1)[0]

    def set_password(self, raw_password: Optional[str]) -> None:  # type: ignore[override]
        self.password_hash = hash_password(raw_password) if raw_password else ""

    def check_password(self, raw_password: Optional[str]) -> bool:  # type: ignore[override]
        return verify_password(self.password_hash, raw_password)


__all__ = ["User"]
