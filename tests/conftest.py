"""
Shared fixtures: a file-backed SQLite database per test, a process-local
job store, and an HTTP client wired to both through dependency overrides.
"""
import httpx
import pytest
import pytest_asyncio

import shipdesk.models  # noqa: F401  registers tables on Base.metadata
from shipdesk.db.base import Base
from shipdesk.db.session import build_engine, build_session_maker, get_session_maker
from shipdesk.schemas.common import Actor
from shipdesk.services.job_store import MemoryJobStore, get_job_store


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh database file; every table created from the models."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'shipdesk.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
def job_store():
    return MemoryJobStore(ttl_seconds=1800)


@pytest.fixture
def actor():
    return Actor(uid="admin-1", email="ops@example.com", role="admin")


@pytest_asyncio.fixture
async def client(session_maker, job_store):
    """HTTP client against the app, bound to the test database and job store."""
    from shipdesk.main import app

    async def _session_maker():
        return session_maker

    async def _job_store():
        return job_store

    app.dependency_overrides[get_session_maker] = _session_maker
    app.dependency_overrides[get_job_store] = _job_store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
