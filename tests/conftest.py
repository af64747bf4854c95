"""
Test infrastructure for the Conduit API.

Strategy
--------
- Service-level tests run against the in-memory fake storages in
  ``tests/fakes.py``: no database at all, and every storage call can be
  inspected afterwards.
- Storage and endpoint tests use SQLite in-memory via aiosqlite, so no
  running Postgres instance is needed in CI.
- StaticPool forces all async tasks to share the same in-memory database
  connection; SQLite in-memory databases are connection-scoped and a new
  connection would see an empty database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from conduit.database import Base, get_db
from conduit.main import app
from conduit.middleware import install_query_counter
from conduit.services.article_service import ArticleService
from tests.fakes import InMemoryArticleStorage, InMemoryUserStorage

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
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


# ---------------------------------------------------------------------------
# Dependency override: replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. exercising the SQL storages).
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# Fake storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def user_storage() -> InMemoryUserStorage:
    return InMemoryUserStorage()


@pytest.fixture
def article_storage(user_storage: InMemoryUserStorage) -> InMemoryArticleStorage:
    return InMemoryArticleStorage(user_storage)


@pytest.fixture
def service(
    article_storage: InMemoryArticleStorage, user_storage: InMemoryUserStorage
) -> ArticleService:
    return ArticleService(article_storage, user_storage)
