"""
Custom assertions and verification helpers for tests.

Provides reusable assertion functions for common PMS sync checks.
"""

from app.domains.pms_sync.domain.entities import SyncRun
from app.domains.pms_sync.domain.value_objects import SyncState
from tests.utils.fakes import InMemoryPMSStore


def assert_single_sync_log(store: InMemoryPMSStore, state: SyncState) -> SyncRun:
    """
    Assert that exactly one sync log row exists and it ended in ``state``.

    Args:
        store: In-memory store the orchestrator wrote to
        state: Expected final state

    Returns:
        The stored run

    Raises:
        AssertionError: If no row, several rows or a different state is stored
    """
    assert len(store.sync_logs) == 1, f"Expected one sync log, found {len(store.sync_logs)}"
    run = store.sync_logs[0]
    assert run.state == state, f"Expected sync log in {state.value}, found {run.state.value}"
    if state.is_terminal():
        assert run.completed_at is not None, "Finished run must have completed_at"
    return run


def assert_patient_funding(store: InMemoryPMSStore, key: tuple, patient_type, sessions_used: int, quota: int) -> None:
    """Assert the derived funding columns of a stored patient."""
    patient = store.patients.get(key)
    assert patient is not None, f"Patient {key} not stored"
    assert (patient.patient_type, patient.sessions_used, patient.quota) == (patient_type, sessions_used, quota), (
        f"Unexpected funding for {key}: {(patient.patient_type, patient.sessions_used, patient.quota)}"
    )
