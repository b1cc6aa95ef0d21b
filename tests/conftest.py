"""
Test infrastructure for the article API.

Strategy
--------
- SQLite in-memory via aiosqlite replaces Postgres; StaticPool makes every
  session share the single connection the in-memory database lives on.
- The app's get_db dependency opens its sessions from the test session
  factory.
- All tables are created before each test and dropped after it.
- Redis is disabled (cache._redis = None); CacheManager treats that as a
  permanent miss, so every read exercises the database path.  Tests that
  need a cache install an in-memory fake through the ``fake_redis`` fixture.
"""
import fnmatch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app import database
from app.database import Base
from app.main import app
from app.cache import cache
from app.middleware import install_query_counter
from app.models import User
from app.repositories import (
    SqlAlchemyArticleFavoriteRepository,
    SqlAlchemyArticleRepository,
    SqlAlchemySocialRepository,
)
from app.services.article_service import ArticleService

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# get_db opens sessions from this factory, so requests keep its commit and
# cache purge behaviour.
database.async_session = async_session_test


# ---------------------------------------------------------------------------
# In-memory stand-in for the redis.asyncio client surface CacheManager uses
# ---------------------------------------------------------------------------

class FakeRedis:
    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def aclose(self):
        pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def article_service(db_session: AsyncSession) -> ArticleService:
    """ArticleService wired to SQLAlchemy repositories over ``db_session``."""
    return ArticleService(
        social_repository=SqlAlchemySocialRepository(db_session),
        article_repository=SqlAlchemyArticleRepository(db_session),
        article_favorite_repository=SqlAlchemyArticleFavoriteRepository(db_session),
    )


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession):
    """Factory fixture: ``await make_user("alice")`` persists and returns a User."""

    async def _make(username: str) -> User:
        user = User(username=username, email=f"{username}@example.com")
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest.fixture
def fake_redis():
    redis = FakeRedis()
    cache._redis = redis
    cache._hits = 0
    cache._misses = 0
    yield redis
    cache._redis = None


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
