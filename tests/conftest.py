"""Test fixtures — one fresh app and in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test builds its own app with create_app(settings). The settings point
   at "sqlite+aiosqlite:///:memory:", and the engine uses a StaticPool so all
   sessions share that one in-memory database.
2. httpx's ASGITransport does not run the lifespan, so the fixture creates
   the tables itself.
3. When the test ends the engine is disposed and the database disappears.

No dependency overrides: requests go through the real authentication gate
with real tokens, which is the point of most of these tests.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tasktrack.config import Settings
from tasktrack.main import create_app
from tasktrack.stores.users import CredentialStore

PASSWORD = "secret123"


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        environment="test",
        jwt_secret="test-secret-key-that-is-long-enough-for-hs256",
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        public_base_url="http://test",
    )


@pytest_asyncio.fixture()
async def app(settings):
    application = create_app(settings)
    await application.state.db.create_all()
    yield application
    await application.state.db.dispose()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def db_session(app):
    """A session on the app's database, for store-level tests and setup."""
    async with app.state.db.session_factory() as session:
        yield session


@pytest.fixture()
def credential_store(db_session, settings) -> CredentialStore:
    return CredentialStore(db_session, bcrypt_rounds=settings.bcrypt_rounds)


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def register(client):
    """Register through the API. Returns (token, user) from the response."""

    async def _register(email=None, password=PASSWORD, name="Test User"):
        r = await client.post(
            "/api/auth/register",
            json={"email": email or unique_email(), "password": password, "name": name},
        )
        assert r.status_code == 201, r.text
        data = r.json()["data"]
        return data["token"], data["user"]

    return _register


@pytest.fixture()
def make_admin(app, settings):
    """Create an admin directly in the store (registration never grants it)."""

    async def _make_admin(email=None, password=PASSWORD):
        async with app.state.db.session_factory() as session:
            users = CredentialStore(session, bcrypt_rounds=settings.bcrypt_rounds)
            user = await users.create(
                email=email or unique_email("admin"),
                password=password,
                name="Admin",
                role="admin",
            )
        return app.state.tokens.issue(user), user

    return _make_admin
