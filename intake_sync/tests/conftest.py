"""Async test fixtures for sync tests using SQLite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from intake_sync.database import get_db, get_session_factory
from intake_sync.mapping.field_mapper import GHL_CONTACT, INTAKEQ_CONTACT, ContactShape
from intake_sync.mapping.filters import apply_filters
from intake_sync.models.base import Base
from intake_sync.services.activity_svc import ActivityLogStore
from intake_sync.services.config_svc import ConfigStore
from intake_sync.services.credentials_svc import CredentialsStore
from intake_sync.sync.connector import Connector, match_exact
from intake_sync.sync.errors import UpstreamStatusError
from intake_sync.sync.sync_engine import SyncEngine


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


class MemoryConnector(Connector):
    """In-memory stand-in for one upstream system."""

    def __init__(self, system: str, shape: ContactShape, id_attr: str, records=None):
        super().__init__(relay=None, api_key="test")
        self.system = system
        self.shape = shape
        self.id_attr = id_attr
        self.records = [dict(r) for r in records or []]
        self.created: list[dict] = []
        self.updated: list[tuple[str, dict]] = []
        self.fail_on: set[str] = set()
        self.fetch_error: Exception | None = None
        self._next_id = 1

    def record_id(self, record):
        value = record.get(self.id_attr)
        return str(value) if value not in (None, "") else None

    async def fetch(self, category, filters):
        if self.fetch_error is not None:
            raise self.fetch_error
        return apply_filters([dict(r) for r in self.records], filters, self.shape, category)

    async def find(self, category, attribute, value):
        found = match_exact(self.records, attribute, value)
        return dict(found) if found is not None else None

    async def create(self, category, fragment):
        self._check(fragment)
        record = dict(fragment)
        record[self.id_attr] = f"{self.system.lower()}-{self._next_id}"
        self._next_id += 1
        self.records.append(record)
        self.created.append(dict(fragment))
        return record

    async def update(self, category, record_id, fragment):
        self._check(fragment)
        for record in self.records:
            if self.record_id(record) == record_id:
                record.update(fragment)
                self.updated.append((record_id, dict(fragment)))
                return record
        raise UpstreamStatusError("Resource not found", 404)

    def _check(self, fragment):
        email = fragment.get(self.shape.email)
        if email in self.fail_on:
            raise UpstreamStatusError(
                "Client error: HTTP 422. Check request parameters and authentication.", 422,
            )


@pytest.fixture
def intakeq():
    return MemoryConnector("IntakeQ", INTAKEQ_CONTACT, "ClientId")


@pytest.fixture
def ghl():
    return MemoryConnector("GoHighLevel", GHL_CONTACT, "id")


@pytest.fixture
def relay():
    return AsyncMock()


@pytest.fixture
def stores(session_factory):
    return (
        ConfigStore(session_factory),
        CredentialsStore(session_factory),
        ActivityLogStore(session_factory),
    )


@pytest.fixture
def sync_engine(stores, relay, intakeq, ghl):
    config_store, credentials_store, activity_store = stores
    return SyncEngine(
        config_store,
        credentials_store,
        activity_store,
        relay,
        connector_factory=lambda _relay, _creds: (intakeq, ghl),
    )


@pytest_asyncio.fixture
async def credentials(stores):
    _, credentials_store, _ = stores
    await credentials_store.save("ghl", "ghl-key", "loc-1")
    await credentials_store.save("intakeq", "iq-key")
    return await credentials_store.get()


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTPX async test client against the sync app."""
    from intake_sync.app import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
