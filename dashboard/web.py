"""Browser-based dashboard for managing users and projects."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, FastAPI, Form, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from .cache import LISTING_PATH, ListingCache
from .config import Settings
from .database import Database, DuplicateRecord, RecordError, RecordNotFound
from .models import Identity, Project, User
from .security import CredentialVerifier
from .sessions import SESSION_COOKIE_NAME, SessionTokens


TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


LOGIN_ERROR_MESSAGES = {
    "CredentialsSignin": "Invalid email or password",
}

USER_MESSAGE_KEYS = ("userSuccess", "userError")
PROJECT_MESSAGE_KEYS = ("projectSuccess", "projectError")


logger = logging.getLogger("ownerdash.web")


class LoginRequired(Exception):
    """Raised by :func:`require_session` to end the request with a login redirect."""

    def __init__(self, callback_url: str) -> None:
        super().__init__(callback_url)
        self.callback_url = callback_url


def safe_callback_url(value: Optional[str]) -> str:
    """Return ``value`` when it is a local path, otherwise ``/``."""

    if not value:
        return LISTING_PATH
    cleaned = value.strip()
    if not cleaned.startswith("/") or cleaned.startswith("//") or "\\" in cleaned:
        return LISTING_PATH
    return cleaned


def _callback_for(request: Request) -> str:
    if request.method != "GET":
        return LISTING_PATH
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return safe_callback_url(path)


def read_session(request: Request) -> Optional[Identity]:
    tokens: SessionTokens = request.app.state.session_tokens
    return tokens.verify(request.cookies.get(SESSION_COOKIE_NAME))


def require_session(request: Request) -> Identity:
    """Return the signed-in identity or abort the request with a login redirect."""

    identity = read_session(request)
    if identity is None:
        raise LoginRequired(_callback_for(request))
    request.state.identity = identity
    return identity


def _login_url(**params: str) -> str:
    query = urlencode({key: value for key, value in params.items() if value})
    return f"/login?{query}" if query else "/login"


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _back_to_listing(**message: str) -> RedirectResponse:
    return _redirect(f"{LISTING_PATH}?{urlencode(message)}")


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%d %b %Y")


def _user_to_view(user: User) -> Dict[str, object]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "created_at": _format_datetime(user.created_at),
    }


def _project_to_view(project: Project) -> Dict[str, object]:
    return {
        "id": project.id,
        "title": project.title,
        "created_at": _format_datetime(project.created_at),
    }


def create_app(
    *,
    settings: Settings,
    database: Optional[Database] = None,
    listing_cache: Optional[ListingCache] = None,
    session_tokens: Optional[SessionTokens] = None,
) -> FastAPI:
    """Create the dashboard web application."""

    if database is None:
        database = Database(settings.database_url)
        database.initialize()

    if listing_cache is None:
        listing_cache = ListingCache(ttl=timedelta(seconds=settings.listing_cache_seconds))

    if session_tokens is None:
        session_tokens = SessionTokens(
            settings.session_secret,
            ttl=timedelta(seconds=settings.session_max_age),
        )

    verifier = CredentialVerifier(settings.owner)

    app = FastAPI(
        title="Owner Dashboard",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.listing_cache = listing_cache
    app.state.session_tokens = session_tokens
    app.state.verifier = verifier

    if not settings.secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Only disable secure cookies for"
            " local development."
        )

    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

    @app.exception_handler(LoginRequired)
    async def _login_required(request: Request, exc: LoginRequired) -> RedirectResponse:
        return _redirect(_login_url(callbackUrl=exc.callback_url))

    def _load_listing() -> Dict[str, List[Dict[str, object]]]:
        cached = listing_cache.get(LISTING_PATH)
        if cached is not None:
            return cached
        generation = listing_cache.generation(LISTING_PATH)
        listing = {
            "users": [_user_to_view(user) for user in database.list_users()],
            "projects": [_project_to_view(project) for project in database.list_projects()],
        }
        listing_cache.put(LISTING_PATH, listing, generation=generation)
        return listing

    @app.get("/login", response_class=HTMLResponse, name="show_login")
    async def login_form(
        request: Request,
        callback_url: Optional[str] = Query(None, alias="callbackUrl"),
        error: Optional[str] = Query(None),
    ):
        callback = safe_callback_url(callback_url)
        if read_session(request) is not None:
            return _redirect(callback)

        message = None
        if error:
            message = LOGIN_ERROR_MESSAGES.get(error, "Unable to sign in. Please try again.")
        return templates.TemplateResponse(
            request,
            "login.html",
            {"error": message, "callback_url": callback},
        )

    @app.post("/login", name="process_login")
    def process_login(
        email: str = Form(""),
        password: str = Form(""),
        callback_url: str = Form(LISTING_PATH, alias="callbackUrl"),
    ):
        callback = safe_callback_url(callback_url)
        identity = verifier.verify(email, password)
        if identity is None:
            logger.warning("Rejected sign-in attempt for %r", email.strip().lower())
            return _redirect(_login_url(error="CredentialsSignin", callbackUrl=callback))

        response = _redirect(callback)
        response.set_cookie(
            SESSION_COOKIE_NAME,
            session_tokens.issue(identity),
            max_age=session_tokens.cookie_max_age,
            httponly=True,
            secure=settings.secure_cookies,
            samesite="lax",
        )
        logger.info("Owner %s signed in", identity.email)
        return response

    @app.api_route("/logout", methods=["GET", "POST"], name="logout")
    async def logout():
        response = _redirect(_login_url())
        response.delete_cookie(SESSION_COOKIE_NAME)
        return response

    router = APIRouter(dependencies=[Depends(require_session)])

    @router.get(LISTING_PATH, response_class=HTMLResponse, name="dashboard")
    def dashboard(request: Request, identity: Identity = Depends(require_session)):
        listing = _load_listing()
        context = {
            "identity": identity,
            "users": listing["users"],
            "projects": listing["projects"],
        }
        for key in USER_MESSAGE_KEYS + PROJECT_MESSAGE_KEYS:
            context[key] = request.query_params.get(key)
        response = templates.TemplateResponse(request, "dashboard.html", context)
        response.headers["Cache-Control"] = "no-store"
        return response

    @router.post("/users", name="create_user")
    def create_user(
        email: str = Form(""),
        name: str = Form(""),
        identity: Identity = Depends(require_session),
    ):
        cleaned_email = email.strip().lower()
        cleaned_name = name.strip() or None

        if not cleaned_email:
            return _back_to_listing(userError="Email is required.")
        if "@" not in cleaned_email:
            return _back_to_listing(userError="Enter a valid email address.")

        try:
            user = database.create_user(cleaned_email, cleaned_name)
        except DuplicateRecord as exc:
            logger.warning("Could not create user %s: %s", cleaned_email, exc)
            return _back_to_listing(userError="Could not create user. Please try again.")
        except RecordError:
            logger.exception("Could not create user %s", cleaned_email)
            return _back_to_listing(userError="Could not create user. Please try again.")

        listing_cache.invalidate(LISTING_PATH)
        logger.info("%s created user %s", identity.email, user.id)
        return _back_to_listing(userSuccess="User created.")

    @router.post("/projects", name="create_project")
    def create_project(
        title: str = Form(""),
        identity: Identity = Depends(require_session),
    ):
        cleaned_title = title.strip()
        if not cleaned_title:
            return _back_to_listing(projectError="Title is required.")

        try:
            project = database.create_project(cleaned_title)
        except RecordError:
            logger.exception("Could not create project %r", cleaned_title)
            return _back_to_listing(projectError="Could not create project. Please try again.")

        listing_cache.invalidate(LISTING_PATH)
        logger.info("%s created project %s", identity.email, project.id)
        return _back_to_listing(projectSuccess="Project created.")

    @router.post("/projects/update", name="update_project")
    def update_project(
        project_id: str = Form("", alias="id"),
        title: str = Form(""),
        identity: Identity = Depends(require_session),
    ):
        cleaned_id = project_id.strip()
        cleaned_title = title.strip()
        if not cleaned_id:
            return _back_to_listing(projectError="Project id is required.")
        if not cleaned_title:
            return _back_to_listing(projectError="Title is required.")

        try:
            database.update_project(cleaned_id, title=cleaned_title)
        except RecordNotFound as exc:
            logger.warning("Could not update project: %s", exc)
            return _back_to_listing(projectError="Could not update project. Please try again.")
        except RecordError:
            logger.exception("Could not update project %s", cleaned_id)
            return _back_to_listing(projectError="Could not update project. Please try again.")

        listing_cache.invalidate(LISTING_PATH)
        logger.info("%s updated project %s", identity.email, cleaned_id)
        return _back_to_listing(projectSuccess="Project updated.")

    @router.post("/projects/delete", name="delete_project")
    def delete_project(
        project_id: str = Form("", alias="id"),
        identity: Identity = Depends(require_session),
    ):
        cleaned_id = project_id.strip()
        if not cleaned_id:
            return _back_to_listing(projectError="Project id is required.")

        try:
            database.delete_project(cleaned_id)
        except RecordNotFound as exc:
            logger.warning("Could not delete project: %s", exc)
            return _back_to_listing(projectError="Could not delete project. Please try again.")
        except RecordError:
            logger.exception("Could not delete project %s", cleaned_id)
            return _back_to_listing(projectError="Could not delete project. Please try again.")

        listing_cache.invalidate(LISTING_PATH)
        logger.info("%s deleted project %s", identity.email, cleaned_id)
        return _back_to_listing(projectSuccess="Project deleted.")

    app.include_router(router)

    return app


__all__ = ["LoginRequired", "create_app", "read_session", "require_session", "safe_callback_url"]
