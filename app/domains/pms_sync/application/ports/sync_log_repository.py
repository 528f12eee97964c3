"""
Sync Log and Sync Control Ports
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from ...domain.entities import SyncControl, SyncRun
from ...domain.value_objects import PMSType


@runtime_checkable
class ISyncLogRepository(Protocol):
    """Audit trail with one row per run."""

    async def add(self, run: SyncRun) -> SyncRun:
        """Insert the row for a starting run and assign its id."""
        ...

    async def update(self, run: SyncRun) -> None:
        """Write the run's current counters, status and error details."""
        ...

    async def get_latest(self, user_id: str, pms_type: PMSType) -> SyncRun | None:
        """Most recent run for the connection."""
        ...

    async def get_last_successful_sync(self, user_id: str, pms_type: PMSType) -> datetime | None:
        """``last_modified_sync`` of the latest completed run."""
        ...


@runtime_checkable
class ISyncControlRepository(Protocol):
    """Pause/resume state and sync schedule per connection."""

    async def get(self, user_id: str, pms_type: PMSType) -> SyncControl | None:
        ...

    async def save(self, control: SyncControl) -> SyncControl:
        """Insert or update the control for (user_id, pms_type)."""
        ...
