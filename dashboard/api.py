"""JSON API exposing the dashboard records to signed-in clients."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cache import LISTING_PATH, ListingCache
from .database import Database, DuplicateRecord, RecordError
from .models import Identity, Project, User
from .sessions import SESSION_COOKIE_NAME, SessionTokens


logger = logging.getLogger("ownerdash.api")


class UserResponse(BaseModel):
    id: str
    email: str
    name: Optional[str]
    created_at: datetime


class ProjectResponse(BaseModel):
    id: str
    title: str
    created_at: datetime


class CreateUserRequest(BaseModel):
    email: str = Field(..., max_length=320)
    name: Optional[str] = Field(default=None, max_length=200)

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        cleaned = value.strip().lower()
        if not cleaned:
            raise ValueError("Email is required.")
        if "@" not in cleaned:
            raise ValueError("Enter a valid email address.")
        return cleaned

    @field_validator("name")
    @classmethod
    def _normalise_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, name=user.name, created_at=user.created_at)


def _project_to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(id=project.id, title=project.title, created_at=project.created_at)


def _envelope(
    *,
    data: Any = None,
    error: Optional[str] = None,
    message: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    payload: dict[str, Any] = {}
    if data is not None:
        payload["data"] = data
    if error is not None:
        payload["error"] = error
    if message is not None:
        payload["message"] = message
    return JSONResponse(status_code=status_code, content=payload)


def _validation_message(exc: RequestValidationError) -> str:
    for error in exc.errors():
        message = str(error.get("msg", "")).strip()
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        if message:
            return message
    return "Invalid request."


def require_api_session(request: Request) -> Identity:
    tokens: SessionTokens = request.app.state.session_tokens
    identity = tokens.verify(request.cookies.get(SESSION_COOKIE_NAME))
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return identity


def create_app(
    *,
    database: Database,
    session_tokens: SessionTokens,
    listing_cache: Optional[ListingCache] = None,
) -> FastAPI:
    """Create the JSON API application."""

    app = FastAPI(
        title="Owner Dashboard API",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.database = database
    app.state.session_tokens = session_tokens
    app.state.listing_cache = listing_cache

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _envelope(error=str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _envelope(error=_validation_message(exc), status_code=status.HTTP_400_BAD_REQUEST)

    @app.get("/users", name="api_list_users")
    def list_users(identity: Identity = Depends(require_api_session)) -> JSONResponse:
        users: List[dict] = [
            _user_to_response(user).model_dump(mode="json") for user in database.list_users()
        ]
        return _envelope(data=users)

    @app.post("/users", name="api_create_user")
    def create_user(
        payload: CreateUserRequest,
        identity: Identity = Depends(require_api_session),
    ) -> JSONResponse:
        try:
            user = database.create_user(payload.email, payload.name)
        except DuplicateRecord as exc:
            logger.warning("Could not create user %s via API: %s", payload.email, exc)
            return _envelope(
                error="A user with that email already exists.",
                status_code=status.HTTP_409_CONFLICT,
            )
        except RecordError:
            logger.exception("Could not create user %s via API", payload.email)
            return _envelope(
                error="Could not create user. Please try again.",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        if listing_cache is not None:
            listing_cache.invalidate(LISTING_PATH)
        logger.info("%s created user %s via API", identity.email, user.id)
        return _envelope(
            data=_user_to_response(user).model_dump(mode="json"),
            message="User created.",
            status_code=status.HTTP_201_CREATED,
        )

    @app.get("/projects", name="api_list_projects")
    def list_projects(identity: Identity = Depends(require_api_session)) -> JSONResponse:
        projects = [
            _project_to_response(project).model_dump(mode="json")
            for project in database.list_projects()
        ]
        return _envelope(data=projects)

    return app


__all__ = ["CreateUserRequest", "ProjectResponse", "UserResponse", "create_app", "require_api_session"]
