from __future__ import annotations

import time
from datetime import timedelta
from unittest import mock

import pytest

from dashboard.models import Identity
from dashboard.sessions import SessionTokens


OWNER = Identity(id="owner", email="owner@example.com", name="Owner")


def test_issued_token_verifies_to_the_same_identity() -> None:
    tokens = SessionTokens("tests-secret-key")
    token = tokens.issue(OWNER)

    assert isinstance(token, str)
    assert tokens.verify(token) == OWNER


def test_tampered_token_is_rejected() -> None:
    tokens = SessionTokens("tests-secret-key")
    token = tokens.issue(OWNER)
    tampered = token[:-2] + ("AA" if not token.endswith("AA") else "BB")

    assert tokens.verify(tampered) is None


def test_token_signed_with_another_secret_is_rejected() -> None:
    issued = SessionTokens("first-secret").issue(OWNER)

    assert SessionTokens("second-secret").verify(issued) is None


def test_expired_token_is_rejected() -> None:
    tokens = SessionTokens("tests-secret-key", ttl=timedelta(minutes=5))
    token = tokens.issue(OWNER)

    later = time.time() + 60 * 60
    with mock.patch("time.time", return_value=later):
        assert tokens.verify(token) is None


@pytest.mark.parametrize("token", [None, "", "not-a-token", "a.b.c"])
def test_malformed_tokens_are_rejected(token) -> None:
    tokens = SessionTokens("tests-secret-key")

    assert tokens.verify(token) is None


def test_cookie_max_age_matches_ttl() -> None:
    tokens = SessionTokens("tests-secret-key", ttl=timedelta(hours=8))

    assert tokens.cookie_max_age == 8 * 60 * 60


def test_empty_secret_is_rejected() -> None:
    with pytest.raises(ValueError):
        SessionTokens("")
