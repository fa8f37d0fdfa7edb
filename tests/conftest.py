from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from passlib.hash import pbkdf2_sha256

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dashboard.config import OwnerCredentials, Settings
from dashboard.database import Database
from dashboard.web import create_app


OWNER_EMAIL = "owner@example.com"
OWNER_PASSWORD = "correctpass"


@pytest.fixture(scope="session")
def owner_password_hash() -> str:
    return pbkdf2_sha256.hash(OWNER_PASSWORD)


@pytest.fixture()
def settings(tmp_path: Path, owner_password_hash: str) -> Settings:
    return Settings(
        session_secret="tests-secret-key",
        owner=OwnerCredentials(email=OWNER_EMAIL, password=owner_password_hash),
        database_url=f"sqlite:///{tmp_path / 'dashboard.sqlite3'}",
    )


@pytest.fixture()
def database(settings: Settings) -> Database:
    db = Database(settings.database_url)
    db.initialize()
    return db


@pytest.fixture()
def client(settings: Settings, database: Database) -> Iterator[TestClient]:
    app = create_app(settings=settings, database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def signed_in_client(client: TestClient) -> TestClient:
    response = client.post(
        "/login",
        data={"email": OWNER_EMAIL, "password": OWNER_PASSWORD},
        follow_redirects=False,
    )
    assert response.status_code == 303
    return client
