"""
Sync run value objects.

Valid transitions of a run:
- IDLE -> CONNECTING
- CONNECTING -> FETCHING_TYPES
- FETCHING_TYPES -> FETCHING_PRACTITIONERS
- FETCHING_PRACTITIONERS -> FETCHING_PATIENTS_AND_APPOINTMENTS
- FETCHING_PATIENTS_AND_APPOINTMENTS -> PERSISTING
- PERSISTING -> COMPLETED
- any non-terminal state -> FAILED
"""

from app.core.domain import StatusEnum


class SyncState(StatusEnum):
    """Lifecycle state of one synchronization run."""

    IDLE = "idle"
    CONNECTING = "connecting"
    FETCHING_TYPES = "fetching_types"
    FETCHING_PRACTITIONERS = "fetching_practitioners"
    FETCHING_PATIENTS_AND_APPOINTMENTS = "fetching_patients_and_appointments"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"

    def can_transition_to(self, new_state: "SyncState") -> bool:
        """Check if transition to new state is valid."""
        if self.is_terminal():
            return False
        if new_state == SyncState.FAILED:
            return True
        return _NEXT_STATE.get(self) == new_state

    def is_terminal(self) -> bool:
        return self in (SyncState.COMPLETED, SyncState.FAILED)


_NEXT_STATE: dict[SyncState, SyncState] = {
    SyncState.IDLE: SyncState.CONNECTING,
    SyncState.CONNECTING: SyncState.FETCHING_TYPES,
    SyncState.FETCHING_TYPES: SyncState.FETCHING_PRACTITIONERS,
    SyncState.FETCHING_PRACTITIONERS: SyncState.FETCHING_PATIENTS_AND_APPOINTMENTS,
    SyncState.FETCHING_PATIENTS_AND_APPOINTMENTS: SyncState.PERSISTING,
    SyncState.PERSISTING: SyncState.COMPLETED,
}


class SyncType(StatusEnum):
    """Why a run was started."""

    INITIAL = "initial"
    INCREMENTAL = "incremental"
    MANUAL = "manual"


class SyncStatus(StatusEnum):
    """Status stored on the sync log."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_state(cls, state: SyncState) -> "SyncStatus":
        if state == SyncState.COMPLETED:
            return cls.COMPLETED
        if state == SyncState.FAILED:
            return cls.FAILED
        return cls.RUNNING
