"""Application factory that serves both the JSON API and the dashboard UI."""
from __future__ import annotations

from datetime import timedelta
from typing import Optional

from fastapi import FastAPI

from .api import create_app as create_api_app
from .cache import ListingCache
from .config import Settings, load_settings
from .database import Database
from .sessions import SessionTokens
from .web import create_app as create_web_app


def create_application(
    *,
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Create the combined ASGI application."""

    if settings is None:
        settings = load_settings()

    if database is None:
        database = Database(settings.database_url)
    database.initialize()

    session_tokens = SessionTokens(
        settings.session_secret,
        ttl=timedelta(seconds=settings.session_max_age),
    )
    listing_cache = ListingCache(ttl=timedelta(seconds=settings.listing_cache_seconds))

    api_app = create_api_app(
        database=database,
        session_tokens=session_tokens,
        listing_cache=listing_cache,
    )
    web_app = create_web_app(
        settings=settings,
        database=database,
        listing_cache=listing_cache,
        session_tokens=session_tokens,
    )

    app = FastAPI(
        title="Owner Dashboard",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.api = api_app
    app.state.web = web_app

    app.mount("/api", api_app)
    app.mount("/", web_app)

    return app


__all__ = ["create_application"]
