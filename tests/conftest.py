import os
import sys

# Keep the app from touching a real Postgres during tests
os.environ.setdefault("POSTGRES_DSN", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("API_PREFIX", "/api/envelopes")


def pytest_sessionstart(session):
    # Ensure project root is on sys.path so `db` and `envelopes` resolve
    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


# --- Test utilities: throwaway SQLite database per test ---
import httpx
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine


@pytest_asyncio.fixture
async def engine(tmp_path):
    from db.models import Base

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'envelopes.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def repo(session):
    from envelopes.envelope_repo import EnvelopeRepositoryPg

    return EnvelopeRepositoryPg(session)


@pytest_asyncio.fixture
async def read_budget(session_factory):
    """Read a budget through a separate session, as a concurrent reader would."""
    from db.models import EnvelopeTable

    async def _read(envelope_id: int):
        async with session_factory() as s:
            envelope = await s.get(EnvelopeTable, envelope_id)
            return None if envelope is None else envelope.budget

    return _read


@pytest_asyncio.fixture
async def client(session_factory):
    from db.postgres import get_async_session
    from main import get_app

    app = get_app()

    async def _session_override():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_async_session] = _session_override
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
