"""
Shared fixtures for integration tests.

This conftest.py provides async test database and client fixtures that ALL
integration tests should use.

IMPORTANT: All integration tests in this project MUST:
1. Use async tests with @pytest.mark.asyncio
2. Use the `client` fixture (AsyncClient) - NOT TestClient
3. Use the `test_db` fixture (AsyncSession) - NOT sync Session
4. Use `await` for all HTTP calls and DB operations
5. Prefix all routes with /api/v1/

Registry lookups go through FakeRegistryClient, so no test ever reaches a
real registry. Profile clients are the real ones with no provider key
configured, unless a test swaps them.

Example:
    @pytest.mark.asyncio
    async def test_something(client, submission_in_db):
        submission = await submission_in_db(full_name="Ana Ruiz")
        response = await client.post(
            f"/api/v1/submissions/{submission.id}/verify", json={}
        )
        assert response.status_code == 202
"""

import asyncio
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from credverify.core.config import settings
from credverify.core.database import get_db
from credverify.main import app
from credverify.models import Base, VerificationMethod, VerificationType
from credverify.verification.notifier import BaseNotifier, get_notifier
from credverify.verification.orchestrator import (
    VerificationClients,
    VerificationOrchestrator,
    get_verification_clients,
)
from credverify.verification.policy import MatchPolicy
from credverify.verification.profile_clients import (
    LinkedInProfileClient,
    ScholarProfileClient,
)
from credverify.verification.registry_clients import (
    BaseRegistryClient,
    RegistryDirectory,
)
from credverify.verification.schemas import (
    LicenseClaim,
    NormalizedFields,
    RegistryLookup,
)


# =============================================================================
# Test Database Configuration
# =============================================================================

# Using aiosqlite for async SQLite support
SQLALCHEMY_TEST_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_db():
    """
    Create a fresh async in-memory database for each test.

    Tables are created before the test and dropped afterwards, so no data
    persists between tests.
    """
    engine = create_async_engine(
        SQLALCHEMY_TEST_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def file_db_sessions(tmp_path):
    """
    Session factory over a file-backed database.

    Unlike `test_db`, each session gets its own connection, so tests can run
    overlapping transactions that only see each other's commits.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'verification.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# =============================================================================
# Fake collaborators
# =============================================================================


class FakeRegistryClient(BaseRegistryClient):
    """
    Registry client answering from a dict keyed by cleaned license number.

    A value may be a RegistryLookup, an exception instance (raised), or
    "hang" (sleeps until cancelled). Every call is recorded and waits `delay`
    seconds first.
    """

    name = "fake_registry"
    verification_type = VerificationType.LICENSE_MEXICO
    method = VerificationMethod.SEP_REGISTRY

    def __init__(self, jurisdiction: str = "MX", answers: Optional[Dict] = None):
        super().__init__()
        self.jurisdiction = jurisdiction
        self.answers = answers or {}
        self.calls: List[str] = []
        self.delay = 0.0

    def supports(self, license: LicenseClaim) -> bool:
        return license.jurisdiction == self.jurisdiction

    def endpoints(self, license, last_name):
        return []

    def board_lookup_url(self, license):
        return "https://registry.example.gob.mx/"

    async def lookup(self, license: LicenseClaim, last_name: Optional[str] = None):
        self.calls.append(license.clean_number)
        if self.delay:
            await asyncio.sleep(self.delay)
        answer = self.answers.get(license.clean_number)
        if answer == "hang":
            await asyncio.sleep(3600)
        if isinstance(answer, Exception):
            raise answer
        if answer is None:
            return RegistryLookup(found=False, source=self.name)
        return answer


class RecordingNotifier(BaseNotifier):
    def __init__(self):
        self.events = []

    async def notify(self, event) -> None:
        self.events.append(event)


@pytest.fixture
def registry_hit():
    """Build a found RegistryLookup: registry_hit("Ana Ruiz", graduation_year=2011)."""

    def _hit(legal_name: str, **fields) -> RegistryLookup:
        return RegistryLookup(
            found=True,
            fields=NormalizedFields(legal_name=legal_name, **fields),
            raw={"legal_name": legal_name},
            source="fake_registry",
        )

    return _hit


@pytest.fixture
def fake_registry():
    return FakeRegistryClient()


@pytest.fixture
def verification_clients(fake_registry):
    return VerificationClients(
        registries=RegistryDirectory([fake_registry]),
        linkedin=LinkedInProfileClient(api_key=""),
        scholar=ScholarProfileClient(api_key=""),
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def orchestrator_factory(test_db, verification_clients, notifier):
    """Build an orchestrator over the test database and fake clients."""

    def _build(clients: Optional[VerificationClients] = None, check_timeout=None):
        return VerificationOrchestrator(
            test_db,
            clients or verification_clients,
            policy=MatchPolicy(),
            notifier=notifier,
            check_timeout=check_timeout,
        )

    return _build


@pytest_asyncio.fixture
async def submission_in_db(test_db, submission_factory):
    """Persist a submission built from keyword overrides."""

    async def _create(**overrides):
        submission = submission_factory(**overrides)
        test_db.add(submission)
        await test_db.commit()
        return submission

    return _create


# =============================================================================
# HTTP client
# =============================================================================


@pytest_asyncio.fixture
async def client(test_db, verification_clients, notifier):
    """
    Create async test client with database and lookup-client overrides.

    IMPORTANT: Always use `await` with client methods:
        response = await client.get("/api/v1/admin/reviews", headers=admin_headers)
    """

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_verification_clients] = lambda: verification_clients
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": settings.ADMIN_API_TOKEN}
