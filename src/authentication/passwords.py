"""bcrypt password hashing shared by the user model, manager, and seed data."""

import bcrypt
from django.conf import settings


def hash_password(raw_password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(raw_password.encode(), salt).decode()


def verify_password(password_hash: str, raw_password: str | None) -> bool:
    """Check ``raw_password`` against a stored hash; blank inputs never match."""

    if not password_hash or raw_password is None:
        return False
    try:
        return bcrypt.checkpw(raw_password.encode(), password_hash.encode())
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


__all__ = ["hash_password", "verify_password"]
