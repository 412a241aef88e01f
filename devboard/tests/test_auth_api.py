from datetime import datetime, timedelta, timezone

import jwt

from devboard.core.auth import create_access_token, decode_access_token, hash_password, verify_password
from devboard.core.config import settings


def test_password_hash_roundtrip():
    hashed = hash_password("Passw0rd!")
    assert hashed != "Passw0rd!"
    assert verify_password("Passw0rd!", hashed)
    assert not verify_password("wrong", hashed)


def test_token_claims():
    token = create_access_token("user-1")
    claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    assert claims["sub"] == "user-1"
    assert claims["exp"] > claims["iat"]
    assert decode_access_token(token) == "user-1"


def test_register_returns_token_and_hides_secrets(client):
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": "carol", "email": "carol@example.com", "password": "Passw0rd!"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "success"
    assert body["token"]
    user = body["data"]["user"]
    assert user["username"] == "carol"
    assert "password_hash" not in user
    assert user["hasGithubToken"] is False


def test_register_rejects_weak_password(client):
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": "carol", "email": "carol@example.com", "password": "password"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_register_duplicate_email_conflicts(client, auth):
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": "alice2", "email": "alice@example.com", "password": "Passw0rd!"},
    )
    assert resp.status_code == 409


def test_login_and_me(client, auth):
    resp = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "Passw0rd!"})
    assert resp.status_code == 200
    token = resp.json()["token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["user"]["email"] == "alice@example.com"
    assert me.json()["data"]["user"]["lastLogin"] is not None


def test_login_wrong_password(client, auth):
    resp = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "Nope1234"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_me_requires_token(client):
    assert client.get("/api/v1/auth/me").status_code == 401
    assert client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_expired_token_rejected(client, auth):
    issued = datetime.now(timezone.utc) - timedelta(minutes=settings.JWT_EXPIRATION_MINUTES + 5)
    token = create_access_token(auth["user"]["id"], now=issued)
    resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Token expired"


def test_update_profile_and_password(client, auth):
    resp = client.patch(
        "/api/v1/auth/update-profile",
        headers=auth["headers"],
        json={"githubUsername": "octocat", "stackoverflowUserId": "22656"},
    )
    assert resp.status_code == 200
    user = resp.json()["data"]["user"]
    assert user["githubUsername"] == "octocat"
    assert user["stackoverflowUserId"] == "22656"

    bad = client.patch(
        "/api/v1/auth/update-password",
        headers=auth["headers"],
        json={"currentPassword": "wrong", "newPassword": "N3wPassword"},
    )
    assert bad.status_code == 401

    ok = client.patch(
        "/api/v1/auth/update-password",
        headers=auth["headers"],
        json={"currentPassword": "Passw0rd!", "newPassword": "N3wPassword"},
    )
    assert ok.status_code == 200
    login = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "N3wPassword"})
    assert login.status_code == 200


def test_update_profile_rejects_bad_github_username(client, auth):
    resp = client.patch(
        "/api/v1/auth/update-profile", headers=auth["headers"], json={"githubUsername": "-bad-"}
    )
    assert resp.status_code == 400
