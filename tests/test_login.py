from __future__ import annotations

from fastapi.testclient import TestClient

from dashboard.sessions import SESSION_COOKIE_NAME


EMAIL = "owner@example.com"
PASSWORD = "correctpass"


def test_dashboard_redirects_to_login_without_session(client: TestClient) -> None:
    response = client.get("/", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/login?callbackUrl=%2F"


def test_login_page_renders_form(client: TestClient) -> None:
    response = client.get("/login?callbackUrl=/")

    assert response.status_code == 200
    assert "Sign in" in response.text
    assert 'name="callbackUrl" value="/"' in response.text
    assert "Invalid email or password" not in response.text


def test_valid_credentials_issue_session_and_redirect_home(client: TestClient) -> None:
    response = client.post(
        "/login",
        data={"email": EMAIL, "password": PASSWORD},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert SESSION_COOKIE_NAME in response.cookies

    follow = client.get("/", follow_redirects=False)
    assert follow.status_code == 200
    assert "Signed in as Owner" in follow.text


def test_wrong_password_shows_generic_error_without_cookie(client: TestClient) -> None:
    response = client.post(
        "/login",
        data={"email": EMAIL, "password": "wrongpass"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert "error=CredentialsSignin" in response.headers["location"]
    assert SESSION_COOKIE_NAME not in response.cookies

    page = client.get(response.headers["location"])
    assert page.status_code == 200
    assert "Invalid email or password" in page.text

    dashboard = client.get("/", follow_redirects=False)
    assert dashboard.status_code == 303


def test_wrong_email_and_wrong_password_are_reported_identically(client: TestClient) -> None:
    wrong_password = client.post(
        "/login",
        data={"email": EMAIL, "password": "wrongpass"},
        follow_redirects=False,
    )
    wrong_email = client.post(
        "/login",
        data={"email": "someone@example.com", "password": PASSWORD},
        follow_redirects=False,
    )

    assert wrong_password.headers["location"] == wrong_email.headers["location"]


def test_login_follows_local_callback_url(client: TestClient) -> None:
    response = client.post(
        "/login",
        data={"email": EMAIL, "password": PASSWORD, "callbackUrl": "/?projectSuccess=hi"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/?projectSuccess=hi"


def test_guarded_query_string_survives_the_login_round_trip(client: TestClient) -> None:
    guarded = client.get("/?projectSuccess=x", follow_redirects=False)

    assert guarded.status_code == 303
    assert guarded.headers["location"] == "/login?callbackUrl=%2F%3FprojectSuccess%3Dx"

    response = client.post(
        "/login",
        data={"email": EMAIL, "password": PASSWORD, "callbackUrl": "/?projectSuccess=x"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/?projectSuccess=x"


def test_login_ignores_external_callback_url(client: TestClient) -> None:
    response = client.post(
        "/login",
        data={"email": EMAIL, "password": PASSWORD, "callbackUrl": "https://evil.example/"},
        follow_redirects=False,
    )

    assert response.headers["location"] == "/"

    protocol_relative = client.get("/login?callbackUrl=//evil.example", follow_redirects=False)
    assert protocol_relative.status_code == 303
    assert protocol_relative.headers["location"] == "/"


def test_login_page_redirects_when_already_signed_in(signed_in_client: TestClient) -> None:
    response = signed_in_client.get("/login?callbackUrl=/", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_logout_clears_session(signed_in_client: TestClient) -> None:
    response = signed_in_client.post("/logout", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/login"

    follow = signed_in_client.get("/", follow_redirects=False)
    assert follow.status_code == 303
    assert follow.headers["location"].startswith("/login")


def test_tampered_session_cookie_is_rejected(client: TestClient) -> None:
    client.cookies.set(SESSION_COOKIE_NAME, "forged.token.value")

    response = client.get("/", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"].startswith("/login")
