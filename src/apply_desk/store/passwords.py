"""Salted password hashing for the simple signed-claim login."""

import hashlib
import hmac

from apply_desk.config import settings


def hash_password(password: str) -> str:
    """Hash password using SHA-256 with the configured salt."""
    return hashlib.sha256(f"{settings.password_salt}{password}".encode()).hexdigest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return hmac.compare_digest(hash_password(plain_password), hashed_password)
