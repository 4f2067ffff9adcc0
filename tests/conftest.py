"""
Test configuration and shared fixtures.
Every test gets its own in-memory SQLite database, so no state leaks between tests.
"""
from __future__ import annotations

import os

os.environ["RATE_LIMIT_ENABLED"] = "false"

from collections.abc import AsyncGenerator, AsyncIterator, Callable  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402
from typing import Any  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

import bugtracker.models  # noqa: E402,F401
from bugtracker.core.security import hash_password  # noqa: E402
from bugtracker.db.base import Base  # noqa: E402
from bugtracker.db.session import get_db, get_session_factory  # noqa: E402
from bugtracker.main import app  # noqa: E402
from bugtracker.models.user import User  # noqa: E402

# ── Test database ─────────────────────────────────────────────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite://"
PASSWORD = "TestPass1"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN.
    @event.listens_for(test_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(test_engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


def shared_session_factory(session: AsyncSession) -> Callable[[], Any]:
    """A session factory that always hands out the given session."""

    @asynccontextmanager
    async def factory() -> AsyncIterator[AsyncSession]:
        yield session

    return factory


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests and background notifications use the test session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: shared_session_factory(db)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Helpers ───────────────────────────────────────────────────────────────────

async def register_and_login(
    client: AsyncClient, email: str, name: str = "Test User"
) -> tuple[dict[str, str], str]:
    """Returns (auth headers, user id)."""
    response = await client.post(
        "/api/v1/auth/register",
        json={"name": name, "email": email, "password": PASSWORD},
    )
    assert response.status_code == 201, response.text
    user_id = response.json()["id"]

    response = await client.post(
        "/api/v1/auth/login", json={"email": email, "password": PASSWORD}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}, user_id


async def create_project(
    client: AsyncClient, headers: dict[str, str], key: str = "ENG", **overrides: Any
) -> dict[str, Any]:
    payload = {"title": f"Project {key}", "description": "Test project", "key": key}
    payload.update(overrides)
    response = await client.post("/api/v1/projects/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def add_member(
    client: AsyncClient,
    headers: dict[str, str],
    project_id: str,
    email: str,
    role: str = "developer",
) -> dict[str, Any]:
    response = await client.post(
        f"/api/v1/projects/{project_id}/members",
        json={"email": email, "role": role},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_ticket(
    client: AsyncClient, headers: dict[str, str], project_id: str, **overrides: Any
) -> dict[str, Any]:
    payload = {"title": "Login button broken", "description": "Nothing happens on click"}
    payload.update(overrides)
    response = await client.post(
        f"/api/v1/projects/{project_id}/tickets", json=payload, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


# ── User fixtures ─────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def owner(client: AsyncClient) -> dict[str, Any]:
    headers, user_id = await register_and_login(client, "owner@example.com", "Alice Owner")
    return {"headers": headers, "id": user_id, "email": "owner@example.com"}


@pytest_asyncio.fixture
async def developer(client: AsyncClient) -> dict[str, Any]:
    headers, user_id = await register_and_login(client, "dev@example.com", "Bob Developer")
    return {"headers": headers, "id": user_id, "email": "dev@example.com"}


@pytest_asyncio.fixture
async def outsider(client: AsyncClient) -> dict[str, Any]:
    headers, user_id = await register_and_login(client, "outsider@example.com", "Eve Outsider")
    return {"headers": headers, "id": user_id, "email": "outsider@example.com"}


@pytest_asyncio.fixture
async def project(
    client: AsyncClient, owner: dict[str, Any], developer: dict[str, Any]
) -> dict[str, Any]:
    """Project ENG owned by owner, with developer as a developer member."""
    created = await create_project(client, owner["headers"], "ENG")
    return await add_member(client, owner["headers"], created["id"], developer["email"])


@pytest_asyncio.fixture
async def admin_headers(client: AsyncClient, db: AsyncSession) -> dict[str, str]:
    """A platform admin, inserted directly since registration only creates users."""
    db.add(
        User(
            name="Platform Admin",
            email="admin@example.com",
            hashed_password=hash_password(PASSWORD),
            role="admin",
        )
    )
    await db.commit()

    response = await client.post(
        "/api/v1/auth/login", json={"email": "admin@example.com", "password": PASSWORD}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
