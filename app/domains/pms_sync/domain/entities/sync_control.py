"""
Sync control settings per (user, pms_type).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from app.core.domain import Entity

from ..value_objects import PMSType


@dataclass
class SyncControl(Entity[int]):
    """Pause/resume switch and schedule bookkeeping for a PMS connection."""

    user_id: str = ""
    pms_type: PMSType = PMSType.CLINIKO
    is_enabled: bool = True
    sync_frequency_hours: int = 6
    last_sync_at: datetime | None = None
    next_sync_at: datetime | None = None

    def pause(self) -> None:
        self.is_enabled = False
        self.next_sync_at = None
        self.touch()

    def resume(self, now: datetime) -> None:
        self.is_enabled = True
        self.next_sync_at = now
        self.touch()

    def record_sync(self, synced_at: datetime) -> None:
        """Store a completed run and schedule the next one."""
        self.last_sync_at = synced_at
        self.next_sync_at = synced_at + timedelta(hours=self.sync_frequency_hours)
        self.touch()
