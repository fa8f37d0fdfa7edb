"""Tests for the JSON API mounted alongside the dashboard."""

from __future__ import annotations

import unittest
from dataclasses import replace
from pathlib import Path
import tempfile

from fastapi.testclient import TestClient
from passlib.hash import pbkdf2_sha256

from dashboard.application import create_application
from dashboard.config import OwnerCredentials, Settings
from dashboard.database import Database


EMAIL = "owner@example.com"
PASSWORD = "correctpass"


class DashboardAPITests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        database_url = f"sqlite:///{Path(self._tempdir.name) / 'dashboard.sqlite3'}"
        self.settings = Settings(
            session_secret="tests-secret-key",
            owner=OwnerCredentials(email=EMAIL, password=pbkdf2_sha256.hash(PASSWORD)),
            database_url=database_url,
        )
        self.database = Database(database_url)
        self.app = create_application(settings=self.settings, database=self.database)

    def tearDown(self) -> None:
        self.database.engine.dispose()
        self._tempdir.cleanup()

    def _login(self, client: TestClient) -> None:
        response = client.post(
            "/login",
            data={"email": EMAIL, "password": PASSWORD},
            follow_redirects=False,
        )
        self.assertEqual(response.status_code, 303, response.text)

    def test_requests_without_session_are_unauthorized(self) -> None:
        with TestClient(self.app) as client:
            listing = client.get("/api/users")
            self.assertEqual(listing.status_code, 401)
            self.assertEqual(listing.json(), {"error": "Unauthorized"})

            created = client.post("/api/users", json={"email": "x@example.com"})
            self.assertEqual(created.status_code, 401)

        self.assertEqual(self.database.list_users(), [])

    def test_create_and_list_users(self) -> None:
        with TestClient(self.app) as client:
            self._login(client)

            created = client.post(
                "/api/users",
                json={"email": " Api.User@Example.com ", "name": "API User"},
            )
            self.assertEqual(created.status_code, 201, created.text)
            payload = created.json()
            self.assertEqual(payload["message"], "User created.")
            self.assertEqual(payload["data"]["email"], "api.user@example.com")
            self.assertEqual(payload["data"]["name"], "API User")
            self.assertNotIn("error", payload)

            listing = client.get("/api/users")
            self.assertEqual(listing.status_code, 200)
            users = listing.json()["data"]
            self.assertEqual([user["id"] for user in users], [payload["data"]["id"]])

    def test_duplicate_email_conflicts(self) -> None:
        self.database.create_user("taken@example.com")

        with TestClient(self.app) as client:
            self._login(client)
            response = client.post("/api/users", json={"email": "taken@example.com"})

        self.assertEqual(response.status_code, 409)
        self.assertIn("error", response.json())
        self.assertEqual(len(self.database.list_users()), 1)

    def test_blank_email_is_a_bad_request(self) -> None:
        with TestClient(self.app) as client:
            self._login(client)
            response = client.post("/api/users", json={"email": "   "})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Email is required."})
        self.assertEqual(self.database.list_users(), [])

    def test_list_projects(self) -> None:
        project = self.database.create_project("Listed")

        with TestClient(self.app) as client:
            self._login(client)
            response = client.get("/api/projects")

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]["id"], project.id)
        self.assertEqual(data[0]["title"], "Listed")

    def test_api_user_creation_refreshes_dashboard_listing(self) -> None:
        app = create_application(
            settings=replace(self.settings, listing_cache_seconds=300),
            database=self.database,
        )
        with TestClient(app) as client:
            self._login(client)
            self.assertIn("No users found.", client.get("/").text)

            client.post("/api/users", json={"email": "fresh@example.com"})

            self.assertIn("fresh@example.com", client.get("/").text)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
