"""Signed session tokens for the dashboard web interface."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from itsdangerous import BadData, URLSafeTimedSerializer

from .models import Identity

SESSION_COOKIE_NAME = "dashboard_session"

_TOKEN_SALT = "ownerdash.session"


class SessionTokens:
    """Issue and verify stateless session tokens carrying an :class:`Identity`.

    Tokens are signed with the configured secret and stamped with their issue
    time, so nothing is stored server-side. A token older than ``ttl`` is
    treated exactly like a forged one.
    """

    def __init__(self, secret: str, *, ttl: timedelta = timedelta(days=7)) -> None:
        if not secret:
            raise ValueError("A session secret is required to sign tokens")
        self._ttl = ttl
        self._serializer = URLSafeTimedSerializer(secret, salt=_TOKEN_SALT)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def cookie_max_age(self) -> int:
        return int(self._ttl.total_seconds())

    def issue(self, identity: Identity) -> str:
        return self._serializer.dumps(identity.to_dict())

    def verify(self, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None
        try:
            payload = self._serializer.loads(token, max_age=self.cookie_max_age)
        except BadData:
            return None
        return Identity.from_dict(payload)


__all__ = ["SESSION_COOKIE_NAME", "SessionTokens"]
