"""Test configuration and fixtures.

Every test gets its own in-memory SQLite database:
1. A fresh ``Database`` is connected and the schema created per test
2. The request session dependency is overridden with the test session
3. Nothing is shared between tests, so no cleanup is needed
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient, Response
from sqlalchemy.ext.asyncio import AsyncSession

# Settings are read at import time, so the test environment must be loaded first
test_env_path = Path(__file__).parent.parent / ".env.test"
load_dotenv(test_env_path, override=True)

from src.database.client import Database  # noqa: E402
from src.database.dependencies import get_db_session  # noqa: E402
from src.features.auth.cookies import REFRESH_COOKIE_NAME  # noqa: E402
from src.features.user.models import User  # noqa: E402
from src.main import app  # noqa: E402

API = "/api"
DEFAULT_PASSWORD = "TestPass123!"


# Database Setup - Function Scope (Fresh Per Test)


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database]:
    """Connect a private in-memory database with all tables created."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.connect()
    await db.create_all()
    app.state.database = db
    try:
        yield db
    finally:
        await db.close()


@pytest_asyncio.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession]:
    async with database.session_factory() as async_session:
        yield async_session


# FastAPI Client & Dependency Overrides


@pytest_asyncio.fixture(autouse=True)
async def override_get_db_session(session: AsyncSession):
    """Route handlers use the same session as the test.

    Mirrors ``get_db_session``: roll back when the handler raises.
    """

    async def _get_test_session():
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

    app.dependency_overrides[get_db_session] = _get_test_session
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    """Unauthenticated async HTTP client.

    httpx keeps cookies between requests; an explicit ``Cookie`` header
    always takes precedence over the jar.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Test User Factories


@pytest_asyncio.fixture
async def make_user(session: AsyncSession):
    """Factory fixture to create committed test users.

    Usage:
        user = await make_user()                                # defaults
        inactive = await make_user(is_active=False)             # deactivated
        known = await make_user(email="a@example.com", password="Xyz12345!")
    """
    counter = 0

    async def _factory(
        email=None,
        password=DEFAULT_PASSWORD,
        first_name="Test",
        last_name="User",
        is_active=True,
        is_verified=False,
    ) -> User:
        nonlocal counter
        counter += 1

        if email is None:
            email = f"testuser{counter}@example.com"

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            hashed_password=User.hash_password(password),
            is_active=is_active,
            is_verified=is_verified,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    yield _factory


# HTTP helpers


def read_refresh_cookie(response: Response) -> str | None:
    """Value of the refresh cookie set by ``response`` ("" when it is being cleared)."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name.strip() == REFRESH_COOKIE_NAME:
            return rest.split(";", 1)[0].strip('"')
    return None


def refresh_cookie_header(response: Response) -> str:
    return f"{REFRESH_COOKIE_NAME}={read_refresh_cookie(response)}"


@pytest.fixture
def cookie_of():
    """Return the refresh cookie value set by a response."""
    return read_refresh_cookie


@pytest.fixture
def cookie_header():
    """Build a ``Cookie`` header value replaying a response's refresh cookie."""
    return refresh_cookie_header


@pytest_asyncio.fixture
async def login_session(client: AsyncClient, make_user):
    """Log a fresh user in through the API.

    Returns:
        tuple: (user, access_token, login_response)

    """

    async def _login(**user_fields):
        password = user_fields.setdefault("password", DEFAULT_PASSWORD)
        user = await make_user(**user_fields)
        response = await client.post(f"{API}/auth/login", json={"email": user.email, "password": password})
        assert response.status_code == 200, response.text
        return user, response.json()["data"]["accessToken"], response

    yield _login
