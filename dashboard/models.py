"""Domain models for the owner dashboard."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlmodel import Field, SQLModel


def _generate_id() -> str:
    return uuid.uuid4().hex


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A user record managed from the dashboard."""

    __tablename__ = "users"

    id: str = Field(default_factory=_generate_id, primary_key=True)
    email: str = Field(index=True, unique=True, nullable=False)
    name: Optional[str] = None
    created_at: datetime = Field(default_factory=_current_timestamp, nullable=False)


class Project(SQLModel, table=True):
    """A project record managed from the dashboard."""

    __tablename__ = "projects"

    id: str = Field(default_factory=_generate_id, primary_key=True)
    title: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=_current_timestamp, nullable=False)


@dataclass(frozen=True)
class Identity:
    """The authenticated principal carried by a session."""

    id: str
    email: str
    name: Optional[str]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"id": self.id, "email": self.email, "name": self.name}

    @staticmethod
    def from_dict(data: object) -> Optional["Identity"]:
        if not isinstance(data, dict):
            return None
        identity_id = data.get("id")
        email = data.get("email")
        name = data.get("name")
        if not isinstance(identity_id, str) or not identity_id:
            return None
        if not isinstance(email, str) or not email:
            return None
        if name is not None and not isinstance(name, str):
            return None
        return Identity(id=identity_id, email=email, name=name)


__all__ = ["Identity", "Project", "User"]
