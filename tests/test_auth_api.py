"""Auth API tests.

Learn: Tests cover:
1. Registration (always role "user", no secret in the response, duplicates)
2. Login and the single generic failure message
3. The authentication gate as seen over HTTP (missing, bad, expired tokens,
   deleted subjects, store outage)
4. Profile and password changes
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import PASSWORD, bearer, unique_email
from tasktrack.db.models import User
from tasktrack.errors import StoreError
from tasktrack.stores.users import CredentialStore


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    """Register returns 201 with a token and the user, never the password."""
    r = await client.post(
        "/api/auth/register",
        json={"email": "a@x.com", "password": "secret1", "name": "Ann"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    user = body["data"]["user"]
    assert user["email"] == "a@x.com"
    assert user["name"] == "Ann"
    assert user["role"] == "user"
    assert "password" not in user
    assert "password_hash" not in user
    assert body["data"]["token"]


@pytest.mark.asyncio
async def test_register_ignores_requested_role(client):
    """Registration cannot be used to become an admin."""
    r = await client.post(
        "/api/auth/register",
        json={"email": unique_email(), "password": PASSWORD, "role": "admin"},
    )
    assert r.status_code == 201
    assert r.json()["data"]["user"]["role"] == "user"


@pytest.mark.asyncio
async def test_register_normalizes_email(client):
    r = await client.post(
        "/api/auth/register",
        json={"email": "  Mixed.Case@Example.COM ", "password": PASSWORD},
    )
    assert r.status_code == 201
    assert r.json()["data"]["user"]["email"] == "mixed.case@example.com"


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    """Can't register with the same email twice."""
    body = {"email": unique_email("dup"), "password": PASSWORD}
    r1 = await client.post("/api/auth/register", json=body)
    assert r1.status_code == 201

    r2 = await client.post("/api/auth/register", json=body)
    assert r2.status_code == 400
    assert r2.json()["success"] is False
    assert r2.json()["message"] == "This email is already registered"


@pytest.mark.asyncio
async def test_register_short_password(client):
    """Password must be at least 6 characters."""
    r = await client.post(
        "/api/auth/register",
        json={"email": unique_email(), "password": "abc"},
    )
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert [e["field"] for e in body["errors"]] == ["password"]


@pytest.mark.asyncio
async def test_register_invalid_email(client):
    r = await client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": PASSWORD},
    )
    assert r.status_code == 400
    errors = r.json()["errors"]
    assert errors == [{"field": "email", "message": "Email is not valid"}]


@pytest.mark.asyncio
async def test_plaintext_password_never_stored(client, db_session):
    email = unique_email("hash")
    await client.post("/api/auth/register", json={"email": email, "password": PASSWORD})

    stored = (
        await db_session.execute(select(User.password_hash).where(User.email == email))
    ).scalar_one()
    assert stored != PASSWORD
    assert stored.startswith("$2b$")


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client, register):
    email = unique_email("login")
    await register(email=email)

    r = await client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Logged in successfully"
    assert body["data"]["user"]["email"] == email
    assert body["data"]["token"]


@pytest.mark.asyncio
async def test_login_wrong_password(client, register):
    email = unique_email("wrong")
    await register(email=email)

    r = await client.post("/api/auth/login", json={"email": email, "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_login_unknown_email_same_message(client):
    """Unknown email and wrong password are indistinguishable."""
    r = await client.post(
        "/api/auth/login", json={"email": unique_email("ghost"), "password": PASSWORD}
    )
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_token_works_on_me(client, register):
    email = unique_email("me")
    await register(email=email, name="Me Myself")
    r = await client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    token = r.json()["data"]["token"]

    me = await client.get("/api/auth/me", headers=bearer(token))
    assert me.status_code == 200
    assert me.json()["data"]["email"] == email
    assert me.json()["data"]["name"] == "Me Myself"


# ═══════════════════════════════════════════════════════════
# Authentication gate
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_without_token(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Not authorized. No token provided"}


@pytest.mark.asyncio
async def test_me_with_non_bearer_header(client):
    r = await client.get("/api/auth/me", headers={"Authorization": "Basic abc"})
    assert r.status_code == 401
    assert r.json()["message"] == "Not authorized. No token provided"


@pytest.mark.asyncio
async def test_me_with_garbage_token(client):
    r = await client.get("/api/auth/me", headers=bearer("not.a.jwt"))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token"


@pytest.mark.asyncio
async def test_me_with_expired_token(app, client, register):
    _, user = await register()
    async with app.state.db.session_factory() as session:
        row = await CredentialStore(session).find_by_id(user["id"])
    expired = app.state.tokens.issue(row, expires_delta=timedelta(seconds=-30))

    r = await client.get("/api/auth/me", headers=bearer(expired))
    assert r.status_code == 401
    assert r.json()["message"] == "Token expired. Please log in again"


@pytest.mark.asyncio
async def test_me_after_user_deleted(app, client, register):
    """A valid token whose subject no longer exists is rejected."""
    token, user = await register()
    async with app.state.db.session_factory() as session:
        await CredentialStore(session).delete(user["id"])

    r = await client.get("/api/auth/me", headers=bearer(token))
    assert r.status_code == 401
    assert r.json()["message"] == "User not found. Invalid token"


@pytest.mark.asyncio
async def test_store_failure_is_not_an_auth_failure(client, register, monkeypatch):
    """A database outage during authentication surfaces as 500, not 401."""
    token, _ = await register()

    async def broken(self, user_id, include_secret=False):
        raise StoreError()

    monkeypatch.setattr(CredentialStore, "find_by_id", broken)
    r = await client.get("/api/auth/me", headers=bearer(token))
    assert r.status_code == 500
    assert r.json()["message"] == "Database operation failed"


# ═══════════════════════════════════════════════════════════
# Profile + password
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_profile(client, register):
    token, _ = await register(name="Old Name")
    new_email = unique_email("new")

    r = await client.put(
        "/api/auth/profile",
        json={"name": "New Name", "email": new_email},
        headers=bearer(token),
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Profile updated successfully"
    assert r.json()["data"]["name"] == "New Name"
    assert r.json()["data"]["email"] == new_email

    # The token stays valid: it is bound to the id, not the email
    me = await client.get("/api/auth/me", headers=bearer(token))
    assert me.json()["data"]["email"] == new_email


@pytest.mark.asyncio
async def test_update_profile_email_taken(client, register):
    taken = unique_email("taken")
    await register(email=taken)
    token, user = await register()

    r = await client.put("/api/auth/profile", json={"email": taken}, headers=bearer(token))
    assert r.status_code == 400
    assert r.json()["message"] == "This email is already in use"

    me = await client.get("/api/auth/me", headers=bearer(token))
    assert me.json()["data"]["email"] == user["email"]


@pytest.mark.asyncio
async def test_update_profile_cannot_change_role(client, register):
    token, _ = await register()
    r = await client.put("/api/auth/profile", json={"role": "admin"}, headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "user"


@pytest.mark.asyncio
async def test_change_password(client, register):
    email = unique_email("pw")
    token, _ = await register(email=email)

    r = await client.put(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "brand-new-pw"},
        headers=bearer(token),
    )
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Password changed successfully"}

    old = await client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert old.status_code == 401
    new = await client.post(
        "/api/auth/login", json={"email": email, "password": "brand-new-pw"}
    )
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(client, register):
    token, _ = await register()
    r = await client.put(
        "/api/auth/change-password",
        json={"current_password": "not-it", "new_password": "brand-new-pw"},
        headers=bearer(token),
    )
    assert r.status_code == 401
    assert r.json()["message"] == "Current password is incorrect"
