"""
SyncRun Aggregate

One synchronization pass against one PMS for one clinic user. It owns the
run state machine, the per-run counters and the issue list that is written
to the sync log.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.core.domain import AggregateRoot, InvalidOperationException

from ..value_objects import PMSType, SyncState, SyncStatus, SyncType


@dataclass
class SyncRun(AggregateRoot[int]):
    """
    Synchronization run aggregate root.

    Example:
        ```python
        run = SyncRun(user_id="user-1", pms_type=PMSType.CLINIKO)
        run.transition_to(SyncState.CONNECTING)
        run.add_issue("Failed to save appointment 42: constraint violation")
        ```
    """

    user_id: str = ""
    pms_type: PMSType = PMSType.CLINIKO
    sync_type: SyncType = SyncType.MANUAL
    state: SyncState = SyncState.IDLE

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    modified_since: datetime | None = None

    # Counters
    appointment_types_count: int = 0
    practitioners_synced: int = 0
    patients_processed: int = 0
    patients_added: int = 0
    patients_synced: int = 0
    appointments_synced: int = 0
    total_appointments: int = 0
    wc_patients: int = 0
    epc_patients: int = 0

    issues: list[str] = field(default_factory=list)
    warnings: list[dict[str, Any]] = field(default_factory=list)
    error: dict[str, Any] | None = None

    @property
    def status(self) -> SyncStatus:
        return SyncStatus.from_state(self.state)

    @property
    def is_finished(self) -> bool:
        return self.state.is_terminal()

    def transition_to(self, new_state: SyncState) -> None:
        """Move the run forward, rejecting out-of-order steps."""
        if not self.state.can_transition_to(new_state):
            raise InvalidOperationException(
                operation=f"transition to {new_state.value}",
                current_state=self.state.value,
            )
        self.state = new_state
        self.increment_version()

    def add_issue(self, message: str) -> None:
        self.issues.append(message)

    def add_warning(self, warning: dict[str, Any]) -> None:
        self.warnings.append(warning)

    def complete(self, now: datetime | None = None) -> None:
        self.transition_to(SyncState.COMPLETED)
        self.completed_at = now or datetime.now(UTC)

    def revoke_completion(self) -> None:
        """Return a completed run to PERSISTING when its completion could not be stored."""
        if self.state != SyncState.COMPLETED:
            raise InvalidOperationException(operation="revoke completion", current_state=self.state.value)
        self.state = SyncState.PERSISTING
        self.completed_at = None
        self.increment_version()

    def fail(self, error: dict[str, Any], now: datetime | None = None) -> None:
        """Mark the run failed. Failing an already finished run is a no-op."""
        if self.is_finished:
            return
        self.transition_to(SyncState.FAILED)
        self.error = error
        self.completed_at = now or datetime.now(UTC)

    @property
    def error_details(self) -> dict[str, Any] | None:
        """Payload stored on the sync log's error_details column."""
        if not (self.error or self.issues or self.warnings):
            return None
        details: dict[str, Any] = {}
        if self.error:
            details["error"] = self.error
        if self.issues:
            details["issues"] = list(self.issues)
        if self.warnings:
            details["warnings"] = list(self.warnings)
        return details

    @property
    def errors_count(self) -> int:
        return len(self.issues) + (1 if self.error else 0)
