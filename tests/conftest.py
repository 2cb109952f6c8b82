"""
Pytest configuration and shared fixtures for credential verification tests.
"""

import os

# Set required environment variables BEFORE importing credverify modules
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
# Note: This is a test-only dummy value, not a real secret
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("EXTERNAL_API_RETRY_ATTEMPTS", "1")

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from credverify.models import CredentialSubmission
from credverify.verification.policy import MatchPolicy
from credverify.verification.schemas import SubmittedCredentialRecord


@pytest.fixture
def mock_db():
    """Create a mock async session for unit tests."""
    mock_session = AsyncMock(spec=AsyncSession)
    mock_session.execute = AsyncMock()
    mock_session.add = MagicMock()
    mock_session.get = AsyncMock()
    mock_session.commit = AsyncMock()
    mock_session.flush = AsyncMock()
    mock_session.rollback = AsyncMock()
    return mock_session


@pytest.fixture
def policy():
    """Default thresholds, independent of environment overrides."""
    return MatchPolicy()


def make_submission(**overrides) -> CredentialSubmission:
    """Build an unsaved CredentialSubmission with sensible defaults."""
    values = dict(
        id=str(uuid.uuid4()),
        full_name="Ana Ruiz",
        email="ana.ruiz@example.com",
        primary_specialty="Cardiology",
        licenses=[],
        medical_school=None,
        medical_school_country=None,
        graduation_year=None,
        current_institutions=[],
        linkedin_url=None,
        linkedin_data=None,
        google_scholar_url=None,
        publications=[],
        created_at=datetime.now(timezone.utc),
    )
    values.update(overrides)
    return CredentialSubmission(**values)


def make_record(**overrides) -> SubmittedCredentialRecord:
    return SubmittedCredentialRecord.from_submission(make_submission(**overrides))


@pytest.fixture
def submission_factory():
    return make_submission


@pytest.fixture
def record_factory():
    return make_record
