"""Manager for author accounts keyed by email."""

from django.contrib.auth.base_user import BaseUserManager

from .passwords import hash_password


class UserManager(BaseUserManager):
    use_in_migrations = True

    def create_user(self, email: str, password: str | None = None, **extra_fields):
        """Create an author; ``name`` defaults to blank and is filled in later."""
        if not email:
            raise ValueError("An email address is required")
        if not password:
            raise ValueError("A password is required")
        extra_fields.setdefault("name", "")
        user = self.model(email=self.normalize_email(email), **extra_fields)
        user.password_hash = hash_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email: str, password: str, **extra_fields):
        return self.create_user(email, password, is_staff=True, **extra_fields)

    def get_by_email(self, email: str):
        """Case-insensitive lookup used by login and registration."""
        return self.get(email__iexact=(email or "").strip())


__all__ = ["UserManager"]
