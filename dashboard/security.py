"""Owner credential verification for the dashboard sign-in form."""
from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Optional

from passlib.context import CryptContext

from .models import Identity

if TYPE_CHECKING:  # pragma: no cover
    from .config import OwnerCredentials

OWNER_ID = "owner"
OWNER_NAME = "Owner"

_pwd_context = CryptContext(schemes=["bcrypt", "pbkdf2_sha256"], deprecated="auto")


def is_password_hash(value: str) -> bool:
    """Return ``True`` when ``value`` carries a hash prefix passlib recognises."""

    if not value:
        return False
    try:
        return _pwd_context.identify(value) is not None
    except ValueError:
        return False


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password must not be empty")
    return _pwd_context.hash(password)


def _verify_password(password: str, hashed: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


def _normalise_email(value: str) -> str:
    return value.strip().lower()


class CredentialVerifier:
    """Check a submitted email/password pair against the configured owner."""

    def __init__(self, owner: "OwnerCredentials") -> None:
        self._email = _normalise_email(owner.email)
        self._password = owner.password
        self._hashed = is_password_hash(owner.password)

    @property
    def uses_hashed_password(self) -> bool:
        return self._hashed

    def verify(self, email: Optional[str], password: Optional[str]) -> Optional[Identity]:
        if not email or not password:
            return None
        if not self._email or not self._password:
            return None

        email_matches = secrets.compare_digest(
            _normalise_email(email).encode("utf-8"),
            self._email.encode("utf-8"),
        )

        if self._hashed:
            password_matches = _verify_password(password, self._password)
        else:
            password_matches = secrets.compare_digest(
                password.encode("utf-8"),
                self._password.encode("utf-8"),
            )

        if not (email_matches and password_matches):
            return None

        return Identity(id=OWNER_ID, email=self._email, name=OWNER_NAME)


__all__ = ["CredentialVerifier", "OWNER_ID", "OWNER_NAME", "hash_password", "is_password_hash"]
