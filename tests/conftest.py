"""
Shared pytest fixtures for all tests.

This module provides the test environment, in-memory repositories, a fake
PMS client and the FastAPI application used across the test suite.
"""

import os
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

# Ensure test environment before any app module reads settings
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["SYNC_ADVISORY_LOCKS"] = "false"
os.environ["PMS_ENCRYPTION_SECRET"] = "test-encryption-secret"

from tests.utils import PatientBuilder, create_mock_client, create_orchestrator_deps  # noqa: E402
from tests.utils.fakes import InMemoryPMSStore  # noqa: E402

# ============================================================================
# TIME FIXTURES
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for quota calculations."""
    return datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


# ============================================================================
# IN-MEMORY STORE FIXTURES
# ============================================================================


@pytest.fixture
def store() -> InMemoryPMSStore:
    """Empty in-memory PMS sync store."""
    return InMemoryPMSStore()


@pytest.fixture
def sample_records():
    """Two patients: one WC with three visits, one EPC with two visits."""
    return [
        PatientBuilder("P-WC")
        .named("Wendy", "Carter")
        .with_appointment("T-WC", datetime(2024, 1, 10, 9, 0, tzinfo=UTC))
        .with_appointment("T-WC", datetime(2024, 2, 10, 9, 0, tzinfo=UTC))
        .with_appointment("T-WC", datetime(2024, 3, 10, 9, 0, tzinfo=UTC))
        .build_record(),
        PatientBuilder("P-EPC")
        .named("Eddie", "Park")
        .with_appointment("T-EPC", datetime(2024, 4, 1, 9, 0, tzinfo=UTC))
        .with_appointment("T-EPC", datetime(2024, 5, 1, 9, 0, tzinfo=UTC))
        .build_record(),
    ]


@pytest.fixture
def fake_client(sample_records):
    """Fake Cliniko client serving the sample records."""
    return create_mock_client(sample_records)


@pytest.fixture
def orchestrator_deps(fake_client, store):
    """SyncOrchestrator collaborators sharing one in-memory store."""
    return create_orchestrator_deps(fake_client, store)


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================


@pytest.fixture
def fastapi_app():
    """Create FastAPI application instance for testing."""
    from app.core.app_factory import create_app

    app = create_app()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(fastapi_app) -> TestClient:
    """Create FastAPI test client. Lifespan is not run, so no database is touched."""
    return TestClient(fastapi_app)
