import asyncio
from datetime import timedelta

from fastapi.testclient import TestClient

from app.core.security import TokenType, token_codec
from app.storage.user_store import UserStore
from conftest import bearer, signup


def test_signup_returns_token_pair(client: TestClient) -> None:
    body = signup(client, email="a@example.com")
    assert set(body) == {"accessToken", "refreshToken"}
    assert body["accessToken"] != body["refreshToken"]


def test_signup_twice_with_same_email_is_bad_request(client: TestClient) -> None:
    signup(client, email="a@example.com")
    resp = client.post("/api/signup", json={"email": "a@example.com", "password": "secret1"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "User with this email or phone already exists"


def test_signup_with_phone_only(client: TestClient) -> None:
    signup(client, phone="+15550001111")


def test_signup_validation_failures_are_400(client: TestClient) -> None:
    cases = [
        {"password": "secret1"},
        {"email": "not-an-email", "password": "secret1"},
        {"phone": "12345", "password": "secret1"},
        {"email": "a@example.com", "password": "short"},
        {"email": "a@example.com"},
    ]
    for body in cases:
        resp = client.post("/api/signup", json=body)
        assert resp.status_code == 400, body


def test_signin_with_correct_credentials(client: TestClient) -> None:
    signup(client, email="a@example.com")
    resp = client.post("/api/signin", json={"id": "a@example.com", "password": "secret1"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["accessToken"] and body["refreshToken"]
    assert body["accessToken"] != body["refreshToken"]


def test_signin_accepts_identifier_field_and_phone(client: TestClient) -> None:
    signup(client, phone="+15550001111")
    resp = client.post("/api/signin", json={"identifier": "+15550001111", "password": "secret1"})
    assert resp.status_code == 200


def test_signin_with_wrong_password_is_unauthorized(client: TestClient) -> None:
    signup(client, email="a@example.com")
    resp = client.post("/api/signin", json={"id": "a@example.com", "password": "wrong-pw"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email/phone or password"
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_signin_rejects_malformed_identifier(client: TestClient) -> None:
    resp = client.post("/api/signin", json={"id": "nobody", "password": "secret1"})
    assert resp.status_code == 400


def test_signin_identifier_uses_signup_email_rules(client: TestClient) -> None:
    # Two dots in a row: rejected by email-validator on both endpoints
    address = "a..b@example.com"
    assert client.post("/api/signup", json={"email": address, "password": "secret1"}).status_code == 400
    assert client.post("/api/signin", json={"id": address, "password": "secret1"}).status_code == 400


def test_signin_matches_normalized_signup_email(client: TestClient) -> None:
    signup(client, email="a@Example.COM")
    resp = client.post("/api/signin", json={"id": "a@EXAMPLE.com", "password": "secret1"})
    assert resp.status_code == 200


def test_signin_runs_store_lookup_off_the_event_loop(client: TestClient, monkeypatch) -> None:
    signup(client, email="a@example.com")
    real_find = UserStore.find_by_identifier
    seen = []

    def find_and_record(db, identifier):
        try:
            asyncio.get_running_loop()
            seen.append("event loop")
        except RuntimeError:
            seen.append("worker thread")
        return real_find(db, identifier)

    monkeypatch.setattr(UserStore, "find_by_identifier", staticmethod(find_and_record))
    resp = client.post("/api/signin", json={"id": "a@example.com", "password": "secret1"})
    assert resp.status_code == 200
    assert seen == ["worker thread"]


def test_refresh_rotates_and_rejects_reuse(client: TestClient) -> None:
    tokens = signup(client, email="a@example.com")

    resp = client.post("/api/signin/new_token", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 200
    rotated = resp.json()
    assert rotated["refreshToken"] != tokens["refreshToken"]

    replay = client.post("/api/signin/new_token", json={"refreshToken": tokens["refreshToken"]})
    assert replay.status_code == 401

    again = client.post("/api/signin/new_token", json={"refreshToken": rotated["refreshToken"]})
    assert again.status_code == 200


def test_refresh_with_garbage_token_is_unauthorized(client: TestClient) -> None:
    resp = client.post("/api/signin/new_token", json={"refreshToken": "garbage"})
    assert resp.status_code == 401


def test_info_requires_authorization_header(client: TestClient) -> None:
    assert client.get("/api/info").status_code == 401
    assert client.get("/api/info", headers={"Authorization": "Token abc"}).status_code == 401


def test_openapi_declares_bearer_security(client: TestClient) -> None:
    schemes = client.get("/openapi.json").json()["components"]["securitySchemes"]
    assert schemes["HTTPBearer"] == {"type": "http", "scheme": "bearer"}


def test_info_with_invalid_or_expired_token_is_forbidden(client: TestClient) -> None:
    tokens = signup(client, email="a@example.com")
    user_id = client.get("/api/info", headers=bearer(tokens["accessToken"])).json()["userId"]
    expired = token_codec.create_token(user_id, TokenType.ACCESS, expires_delta=timedelta(seconds=-1))

    assert client.get("/api/info", headers=bearer("garbage")).status_code == 403
    assert client.get("/api/info", headers=bearer(expired)).status_code == 403
    # A refresh token is not an access token
    assert client.get("/api/info", headers=bearer(tokens["refreshToken"])).status_code == 403


def test_logout_requires_header_and_valid_refresh_token(client: TestClient) -> None:
    tokens = signup(client, email="a@example.com")
    assert client.get("/api/logout").status_code == 401
    assert client.get("/api/logout", headers=bearer("garbage")).status_code == 401
    assert client.get("/api/logout", headers=bearer(tokens["accessToken"])).status_code == 401


def test_logout_twice_succeeds(client: TestClient) -> None:
    tokens = signup(client, email="a@example.com")
    for _ in range(2):
        resp = client.get("/api/logout", headers=bearer(tokens["refreshToken"]))
        assert resp.status_code == 200
        assert resp.json() == {"message": "Successfully logged out"}


def test_logout_only_ends_the_presented_session(client: TestClient) -> None:
    signup(client, email="a@example.com")
    laptop = client.post("/api/signin", json={"id": "a@example.com", "password": "secret1"}).json()
    phone = client.post("/api/signin", json={"id": "a@example.com", "password": "secret1"}).json()

    client.get("/api/logout", headers=bearer(laptop["refreshToken"]))

    assert client.post(
        "/api/signin/new_token", json={"refreshToken": laptop["refreshToken"]}).status_code == 401
    assert client.post(
        "/api/signin/new_token", json={"refreshToken": phone["refreshToken"]}).status_code == 200


def test_full_session_lifecycle_access_token_outlives_logout(client: TestClient) -> None:
    tokens = signup(client, email="a@example.com")

    info = client.get("/api/info", headers=bearer(tokens["accessToken"]))
    assert info.status_code == 200
    user_id = info.json()["userId"]
    assert token_codec.verify_refresh(tokens["refreshToken"]) == user_id

    assert client.get("/api/logout", headers=bearer(tokens["refreshToken"])).status_code == 200

    # Only refresh tokens are revocable: the old access token works until it expires
    after = client.get("/api/info", headers=bearer(tokens["accessToken"]))
    assert after.status_code == 200
    assert after.json() == {"userId": user_id}

    refresh = client.post("/api/signin/new_token", json={"refreshToken": tokens["refreshToken"]})
    assert refresh.status_code == 401
