"""Service test fixtures — async DB, FastAPI test client, in-memory document engine.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session
    - db_manager patched so the readiness probe sees the test engine
    - FakeDocumentEngine records every call so tests can assert on store traffic

Design Decisions:
    - SQLite in-memory: fast, no external dependency, exercises TableDocumentEngine
      end to end (PgFunctionDocumentEngine is tested against a mocked session)
    - StaticPool: every session shares the one in-memory connection
"""

import json
import uuid

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from fhir_lite.core.domain_types import ResourceId
from fhir_lite.db.base import Base
from fhir_lite.infrastructure.database import get_db, DatabaseSessionManager
import fhir_lite.infrastructure.database as db_module
import fhir_lite.models  # noqa: F401
from fhir_lite.main import app


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    # Readiness probe reads db_manager directly
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


class FakeDocumentEngine:
    """In-memory DocumentEngine. Never stamps meta; pages with _count/_offset."""

    def __init__(self):
        self.documents: dict[ResourceId, str] = {}
        self.calls: list[tuple] = []
        self.vanished: set[ResourceId] = set()

    async def put(self, kind, document):
        self.calls.append(("put", kind, document))
        body = json.loads(document)
        return self.seed(body)

    async def get(self, kind, resource_id):
        self.calls.append(("get", kind, resource_id))
        if resource_id in self.vanished:
            return None
        return self.documents.get(resource_id)

    async def search(self, kind, filter_json):
        self.calls.append(("search", kind, filter_json))
        filters = json.loads(filter_json)
        ids = list(self.documents)
        offset, count = filters["_offset"], filters["_count"]
        return ids[offset:offset + count]

    async def count(self, kind, filter_json):
        self.calls.append(("count", kind, filter_json))
        return len(self.documents)

    def seed(self, body: dict) -> ResourceId:
        resource_id = ResourceId(uuid.uuid4())
        self.documents[resource_id] = json.dumps({**body, "id": str(resource_id)})
        return resource_id

    def called(self, op: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == op]


@pytest.fixture
def fake_engine():
    return FakeDocumentEngine()


@pytest.fixture
def patient_body():
    return {
        "resourceType": "Patient",
        "name": [{"family": "Alpha", "given": ["Jane"]}],
        "gender": "female",
        "birthDate": "1985-02-17",
    }
