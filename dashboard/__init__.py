"""Owner dashboard: authenticated CRUD for users and projects."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_url


def create_application(*args: Any, **kwargs: Any):
    """Factory function that returns the combined web + API application."""

    from .application import create_application as _create_application

    return _create_application(*args, **kwargs)


def create_web_app(*args: Any, **kwargs: Any):
    """Factory function for the dashboard-only application."""

    from .web import create_app as _create_web_app

    return _create_web_app(*args, **kwargs)


__all__ = [
    "Database",
    "resolve_database_url",
    "create_application",
    "create_web_app",
]
