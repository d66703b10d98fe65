import os

# Settings are read at import time by app.rate_limit; pin test values first.
os.environ.setdefault("GRAPH_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("JWT_ISSUER", "identity")
os.environ.setdefault("JWT_AUDIENCE", "graph")

import itertools
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
import sqlalchemy as sa
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import get_db
from app.main import app
from app.rate_limit import limiter
from app.users.models import User
from shared.auth.config import AuthSettings
from shared.database.postgres import Base, build_session_factory, session_scope

TEST_DATABASE_URL = "sqlite+aiosqlite://"

COUNTER_COLUMNS = ("followers_count", "following_count", "blocked_count", "close_friends_count")

_usernames = itertools.count(1)


def _enable_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    # One shared in-memory connection so every session sees the same database.
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── Data helpers ──────────────────────────────────────────────────────────────

@pytest.fixture
def user_factory(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Create a user inside the test's session (flushed, not committed)."""

    async def _make(username: str | None = None, *, is_private: bool = False) -> User:
        name = username or f"user{next(_usernames)}"
        user = User(username=name, full_name=name.title(), is_private=is_private)
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest.fixture
def seed_user(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[int]]:
    """Create and commit a user for HTTP tests; returns its id."""

    async def _make(username: str | None = None, *, is_private: bool = False) -> int:
        name = username or f"user{next(_usernames)}"
        async with session_factory() as session:
            user = User(username=name, full_name=name.title(), is_private=is_private)
            session.add(user)
            await session.commit()
            return user.id

    return _make


@pytest.fixture
def get_counters() -> Callable[[AsyncSession, int], Awaitable[dict[str, int]]]:
    """Read counters straight from the table, bypassing the identity map."""

    async def _read(session: AsyncSession, user_id: int) -> dict[str, int]:
        users = User.__table__
        row = (
            await session.execute(
                sa.select(*(users.c[c] for c in COUNTER_COLUMNS)).where(users.c.id == user_id)
            )
        ).one()
        return dict(row._mapping)

    return _read


# ── HTTP helpers ──────────────────────────────────────────────────────────────

@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    settings = AuthSettings()

    def _headers(user_id: int, roles: list[str] | None = None) -> dict[str, str]:
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": str(user_id),
                "roles": roles or ["user"],
                "iss": settings.issuer,
                "aud": settings.audience,
                "iat": now,
                "exp": now + timedelta(minutes=15),
            },
            settings.secret,
            algorithm=settings.algorithm,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_scope(session_factory) as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
