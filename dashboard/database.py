"""SQLModel-backed persistence for users and projects."""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from .models import Project, User


class RecordError(Exception):
    """Base class for failures raised by :class:`Database` write operations."""


class RecordNotFound(RecordError):
    """The referenced record does not exist."""


class DuplicateRecord(RecordError):
    """A uniqueness constraint rejected the write."""


class PersistenceError(RecordError):
    """The underlying store failed for any other reason."""


def resolve_database_url(env_value: Optional[str]) -> str:
    """Resolve the SQLAlchemy URL for the application database."""

    if env_value and env_value.strip():
        return env_value.strip()
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return f"sqlite:///{(base_dir / 'dashboard.sqlite3').resolve(strict=False)}"


def _ensure_sqlite_directory(url: str) -> None:
    prefix = "sqlite:///"
    if not url.startswith(prefix):
        return
    raw_path = url[len(prefix):]
    if not raw_path or raw_path == ":memory:":
        return
    Path(raw_path).expanduser().parent.mkdir(parents=True, exist_ok=True)


def _is_unique_violation(exc: IntegrityError) -> bool:
    # SQLite reports "UNIQUE constraint failed"; PostgreSQL uses SQLSTATE 23505.
    if getattr(exc.orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(exc.orig).lower()


def _build_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


class Database:
    """Thin wrapper around a SQLModel engine for the dashboard records."""

    def __init__(self, url: str) -> None:
        _ensure_sqlite_directory(url)
        self._url = url
        self._engine = _build_engine(url)

    @property
    def url(self) -> str:
        return self._url

    @property
    def engine(self) -> Engine:
        return self._engine

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        SQLModel.metadata.create_all(self._engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        with Session(self._engine, expire_on_commit=False) as session:
            yield session

    @contextmanager
    def _write(self, action: str) -> Iterator[Session]:
        with self.session() as session:
            try:
                yield session
                session.commit()
            except RecordError:
                session.rollback()
                raise
            except IntegrityError as exc:
                session.rollback()
                if _is_unique_violation(exc):
                    raise DuplicateRecord(f"Could not {action}: already exists") from exc
                raise PersistenceError(f"Could not {action}: constraint violated") from exc
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceError(f"Could not {action}") from exc

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def list_users(self) -> List[User]:
        with self.session() as session:
            statement = select(User).order_by(User.created_at.desc())
            return list(session.exec(statement).all())

    def get_user(self, user_id: str) -> Optional[User]:
        with self.session() as session:
            return session.get(User, user_id)

    def create_user(self, email: str, name: Optional[str] = None) -> User:
        """Insert a user; ``email`` is stored trimmed and lower-cased."""

        normalized_email = email.strip().lower()
        if not normalized_email:
            raise ValueError("Email must not be empty")
        normalized_name = name.strip() if name else None

        user = User(email=normalized_email, name=normalized_name or None)
        with self._write("create user") as session:
            session.add(user)
        return user

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------
    def list_projects(self) -> List[Project]:
        with self.session() as session:
            statement = select(Project).order_by(Project.created_at.desc())
            return list(session.exec(statement).all())

    def get_project(self, project_id: str) -> Optional[Project]:
        with self.session() as session:
            return session.get(Project, project_id)

    def create_project(self, title: str) -> Project:
        normalized_title = title.strip()
        if not normalized_title:
            raise ValueError("Title must not be empty")

        project = Project(title=normalized_title)
        with self._write("create project") as session:
            session.add(project)
        return project

    def update_project(self, project_id: str, *, title: str) -> Project:
        """Rename an existing project. Only the title is ever changed."""

        normalized_title = title.strip()
        if not normalized_title:
            raise ValueError("Title must not be empty")

        with self._write("update project") as session:
            project = session.get(Project, project_id)
            if project is None:
                raise RecordNotFound(f"Project {project_id!r} not found")
            project.title = normalized_title
            session.add(project)
        return project

    def delete_project(self, project_id: str) -> None:
        with self._write("delete project") as session:
            project = session.get(Project, project_id)
            if project is None:
                raise RecordNotFound(f"Project {project_id!r} not found")
            session.delete(project)


__all__ = [
    "Database",
    "DuplicateRecord",
    "PersistenceError",
    "RecordError",
    "RecordNotFound",
    "resolve_database_url",
]
