"""Configuration management for the owner dashboard."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .database import resolve_database_url
from .security import is_password_hash

logger = logging.getLogger("ownerdash.config")

DEFAULT_SESSION_MAX_AGE = 60 * 60 * 24 * 7
DEFAULT_LISTING_CACHE_SECONDS = 0


class ConfigurationError(ValueError):
    """Raised when the dashboard cannot start with the supplied settings."""


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_flag(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return _env_flag(str(value), default)


def _as_int(name: str, value: object, default: int) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer") from exc
    if parsed < 0:
        raise ConfigurationError(f"{name} must not be negative")
    return parsed


def _as_text(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class OwnerCredentials:
    """The single identity allowed to sign in to the dashboard."""

    email: str
    password: str

    @property
    def password_is_hashed(self) -> bool:
        return is_password_hash(self.password)


@dataclass(frozen=True)
class Settings:
    """Immutable settings resolved once at startup."""

    session_secret: str
    owner: OwnerCredentials
    database_url: str
    session_max_age: int = DEFAULT_SESSION_MAX_AGE
    secure_cookies: bool = False
    listing_cache_seconds: int = DEFAULT_LISTING_CACHE_SECONDS
    allow_plaintext_password: bool = False

    def __post_init__(self) -> None:
        if not self.session_secret:
            raise ConfigurationError("A session secret must be configured")
        if not self.owner.email:
            raise ConfigurationError("An owner email must be configured")
        if not self.owner.password:
            raise ConfigurationError("An owner password or password hash must be configured")
        if not self.owner.password_is_hashed:
            if not self.allow_plaintext_password:
                raise ConfigurationError(
                    "The owner password must be a bcrypt or pbkdf2_sha256 hash. Generate one with "
                    "`python main.py hash-password` or set DASHBOARD_ALLOW_PLAINTEXT_PASSWORD=1."
                )
            logger.warning(
                "The owner password is configured in plain text. Store a password hash instead;"
                " plaintext credentials are only acceptable for local development."
            )

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "Settings":
        """Create :class:`Settings` from YAML-style nested data."""

        owner_raw = data.get("owner") or {}
        session_raw = data.get("session") or {}
        if not isinstance(owner_raw, Mapping) or not isinstance(session_raw, Mapping):
            raise ConfigurationError("The 'owner' and 'session' sections must be mappings")

        email = _as_text(owner_raw.get("email"))
        password = _as_text(owner_raw.get("password"))

        return Settings(
            session_secret=_as_text(data.get("session_secret")) or "",
            owner=OwnerCredentials(email=(email or "").lower(), password=password or ""),
            database_url=resolve_database_url(_as_text(data.get("database_url"))),
            session_max_age=_as_int(
                "session.max_age", session_raw.get("max_age"), DEFAULT_SESSION_MAX_AGE
            ),
            secure_cookies=_as_flag(session_raw.get("secure")),
            listing_cache_seconds=_as_int(
                "listing_cache_seconds",
                data.get("listing_cache_seconds"),
                DEFAULT_LISTING_CACHE_SECONDS,
            ),
            allow_plaintext_password=_as_flag(owner_raw.get("allow_plaintext_password")),
        )


_ENV_OVERRIDES = {
    "DASHBOARD_SESSION_SECRET": ("session_secret",),
    "DASHBOARD_OWNER_EMAIL": ("owner", "email"),
    "DASHBOARD_OWNER_PASSWORD": ("owner", "password"),
    "DASHBOARD_ALLOW_PLAINTEXT_PASSWORD": ("owner", "allow_plaintext_password"),
    "DASHBOARD_DATABASE_URL": ("database_url",),
    "DASHBOARD_SESSION_MAX_AGE": ("session", "max_age"),
    "DASHBOARD_SESSION_SECURE": ("session", "secure"),
    "DASHBOARD_LISTING_CACHE_SECONDS": ("listing_cache_seconds",),
}


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the optional YAML configuration file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "dashboard.yaml").resolve(strict=False)


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """Load raw settings from a YAML file, returning an empty mapping if it is absent."""
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
    return raw


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    config_path: Optional[Path] = None,
) -> Settings:
    """Build :class:`Settings` from the YAML file with environment overrides applied."""

    env = os.environ if environ is None else environ
    path = config_path or resolve_config_path(env.get("DASHBOARD_CONFIG"))
    data = load_config_file(path)

    for variable, keys in _ENV_OVERRIDES.items():
        value = env.get(variable)
        if value is None:
            continue
        target: Dict[str, Any] = data
        for key in keys[:-1]:
            section = target.get(key)
            if not isinstance(section, dict):
                section = {}
                target[key] = section
            target = section
        target[keys[-1]] = value

    return Settings.from_mapping(data)


__all__ = [
    "ConfigurationError",
    "OwnerCredentials",
    "Settings",
    "load_config_file",
    "load_settings",
    "resolve_config_path",
]
