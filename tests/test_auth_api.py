import pytest

from api import create_app
from api.config import TestingConfig
from models.user import Role

from tests.helpers import PASSWORD, auth_header, register


def test_register_returns_token_pair(client):
    r = register(client)
    assert r.status_code == 200
    body = r.get_json()
    assert set(body) == {"accessToken", "refreshToken", "expiresIn", "tokenType"}
    assert body["expiresIn"] == 3600
    assert body["tokenType"] == "Bearer"


def test_register_duplicate_email_conflicts(client):
    assert register(client).status_code == 200
    r = register(client, email="ADA@example.com")
    assert r.status_code == 409
    assert r.get_json()["error"] == "CONFLICT"


def test_register_ignores_requested_role(client, issuer):
    r = client.post("/api/v1/auth/register", json={
        "email": "mallory@example.com", "password": PASSWORD,
        "firstName": "Mal", "lastName": "Lory", "role": "admin",
    })
    assert r.status_code == 200
    assert issuer.verify_access_token(r.get_json()["accessToken"])["role"] == "student"


@pytest.mark.parametrize("payload", [
    {},
    {"email": "not-an-email", "password": PASSWORD, "firstName": "A", "lastName": "B"},
    {"email": "a@example.com", "password": "short", "firstName": "A", "lastName": "B"},
    {"email": "a@example.com", "password": PASSWORD, "firstName": "", "lastName": "B"},
])
def test_register_validation(client, payload):
    r = client.post("/api/v1/auth/register", json=payload)
    assert r.status_code == 422
    assert r.get_json()["error"] == "VALIDATION_ERROR"


def test_login_success_and_uniform_failures(client):
    register(client)
    ok = client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
    assert ok.status_code == 200
    assert ok.get_json()["tokenType"] == "Bearer"

    wrong_pw = client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "nope-nope"})
    unknown = client.post("/api/v1/auth/login", json={"email": "who@example.com", "password": PASSWORD})
    assert wrong_pw.status_code == unknown.status_code == 401
    assert wrong_pw.get_json() == unknown.get_json()
    assert unknown.get_json()["error"] == "INVALID_CREDENTIALS"


def test_refresh_rotation_over_http(client):
    r1 = register(client).get_json()["refreshToken"]
    first = client.post("/api/v1/auth/refresh", json={"refreshToken": r1})
    assert first.status_code == 200
    r2 = first.get_json()["refreshToken"]

    replay = client.post("/api/v1/auth/refresh", json={"refreshToken": r1})
    assert replay.status_code == 401
    assert replay.get_json()["error"] == "INVALID_REFRESH_TOKEN"

    assert client.post("/api/v1/auth/refresh", json={"refreshToken": r2}).status_code == 200


def test_refresh_is_public_and_needs_body(client):
    r = client.post("/api/v1/auth/refresh", json={})
    assert r.status_code == 422


def test_profile_requires_token(client):
    r = client.get("/api/v1/auth/profile")
    assert r.status_code == 401
    assert r.get_json()["error"] == "UNAUTHORIZED"
    assert r.headers["WWW-Authenticate"] == "Bearer"


def test_profile_hides_secrets(client):
    tokens = register(client).get_json()
    r = client.get("/api/v1/auth/profile", headers=auth_header(tokens["accessToken"]))
    assert r.status_code == 200
    body = r.get_json()
    assert body["email"] == "ada@example.com"
    assert body["firstName"] == "Ada"
    assert body["role"] == "student"
    assert "password" not in body and "passwordHash" not in body and "password_hash" not in body


def test_refresh_token_cannot_be_used_as_bearer(client):
    tokens = register(client).get_json()
    r = client.get("/api/v1/auth/profile", headers=auth_header(tokens["refreshToken"]))
    assert r.status_code == 401


def test_expired_access_token_rejected(client, clock):
    tokens = register(client).get_json()
    clock.advance(seconds=3599)
    assert client.get("/api/v1/auth/profile", headers=auth_header(tokens["accessToken"])).status_code == 200
    clock.advance(seconds=1)
    assert client.get("/api/v1/auth/profile", headers=auth_header(tokens["accessToken"])).status_code == 401


def test_logout_requires_bearer(client):
    tokens = register(client).get_json()
    r = client.post("/api/v1/auth/logout", json={"refreshToken": tokens["refreshToken"]})
    assert r.status_code == 401
    # rejected before the view ran: the token still rotates
    assert client.post("/api/v1/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 200


def test_logout_revokes_refresh_token(client):
    tokens = register(client).get_json()
    headers = auth_header(tokens["accessToken"])
    r = client.post("/api/v1/auth/logout", json={"refreshToken": tokens["refreshToken"]}, headers=headers)
    assert r.status_code == 200
    assert r.get_json() == {"message": "Logged out successfully"}
    # idempotent
    again = client.post("/api/v1/auth/logout", json={"refreshToken": tokens["refreshToken"]}, headers=headers)
    assert again.status_code == 200
    assert client.post("/api/v1/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 401


def test_logout_all(client, login):
    first = register(client).get_json()
    second = login("ada@example.com")
    r = client.post("/api/v1/auth/logout-all", headers=auth_header(second["accessToken"]))
    assert r.status_code == 200
    assert r.get_json()["message"] == "Logged out from all devices successfully"
    for tokens in (first, second):
        assert client.post("/api/v1/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 401


def test_logout_of_someone_elses_token_allowed_by_default(client):
    """Default: any authenticated caller may revoke a refresh token it presents."""
    victim = register(client).get_json()
    attacker = register(client, email="eve@example.com").get_json()
    r = client.post(
        "/api/v1/auth/logout",
        json={"refreshToken": victim["refreshToken"]},
        headers=auth_header(attacker["accessToken"]),
    )
    assert r.status_code == 200
    assert client.post("/api/v1/auth/refresh", json={"refreshToken": victim["refreshToken"]}).status_code == 401


def test_logout_of_someone_elses_token_ignored_when_owner_required(monkeypatch):
    """LOGOUT_REQUIRE_OWNER: the request still succeeds but the token survives."""
    monkeypatch.setattr(TestingConfig, "LOGOUT_REQUIRE_OWNER", True)
    app = create_app("testing")
    client = app.test_client()

    victim = register(client).get_json()
    attacker = register(client, email="eve@example.com").get_json()
    r = client.post(
        "/api/v1/auth/logout",
        json={"refreshToken": victim["refreshToken"]},
        headers=auth_header(attacker["accessToken"]),
    )
    assert r.status_code == 200
    assert client.post("/api/v1/auth/refresh", json={"refreshToken": victim["refreshToken"]}).status_code == 200

    own = client.post(
        "/api/v1/auth/logout",
        json={"refreshToken": attacker["refreshToken"]},
        headers=auth_header(attacker["accessToken"]),
    )
    assert own.status_code == 200
    assert client.post("/api/v1/auth/refresh", json={"refreshToken": attacker["refreshToken"]}).status_code == 401


def test_profile_of_deleted_user_is_not_found(client, make_user, login):
    make_user("admin@example.com", role=Role.ADMIN)
    admin = login("admin@example.com")
    tokens = register(client).get_json()
    me = client.get("/api/v1/auth/profile", headers=auth_header(tokens["accessToken"])).get_json()

    assert client.delete(f"/api/v1/users/{me['id']}", headers=auth_header(admin["accessToken"])).status_code == 200
    r = client.get("/api/v1/auth/profile", headers=auth_header(tokens["accessToken"]))
    assert r.status_code == 404
    assert client.post("/api/v1/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 401


def test_public_routes_open(client):
    assert client.get("/api/v1/health").get_json()["status"] == "ok"
    assert client.get("/").status_code == 200
    assert client.get("/api/v1/nowhere").status_code == 404
