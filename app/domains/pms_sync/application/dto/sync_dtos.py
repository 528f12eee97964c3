# ============================================================================
# SCOPE: APPLICATION LAYER (PMS Sync)
# Description: Data Transfer Objects for PMS sync operations.
# ============================================================================
"""PMS Sync DTOs.

Request and result objects for connecting a PMS, running a sync,
reclassifying funding tags and reading sync state.
"""

from dataclasses import dataclass, field

from ...domain.entities import CaseCounts, SyncControl, SyncRun
from ...domain.value_objects import PMSType, SyncType

# =============================================================================
# Request DTOs
# =============================================================================


@dataclass(frozen=True)
class ConnectPMSRequest:
    """Request DTO for storing and verifying a PMS credential."""

    user_id: str
    pms_type: PMSType
    api_key: str
    clinic_id: str | None = None


@dataclass(frozen=True)
class RunSyncRequest:
    """Request DTO for a sync with a plaintext API key."""

    user_id: str
    pms_type: PMSType
    api_key: str
    sync_type: SyncType = SyncType.MANUAL


@dataclass(frozen=True)
class SyncStoredCredentialRequest:
    """Request DTO for a sync using the stored credential."""

    user_id: str
    pms_type: PMSType
    sync_type: SyncType = SyncType.INCREMENTAL


@dataclass(frozen=True)
class UpdateTagsRequest:
    """Request DTO for changing the clinic's funding tag vocabulary."""

    user_id: str
    wc_tags: list[str] | str | None = None
    epc_tags: list[str] | str | None = None


# =============================================================================
# Result DTOs
# =============================================================================


@dataclass(frozen=True)
class ConnectPMSResult:
    connected: bool
    pms_type: PMSType
    api_url: str | None = None


@dataclass(frozen=True)
class SyncSummary:
    """Outcome of a completed sync run."""

    wc_patients: int
    epc_patients: int
    total_appointments: int
    appointment_types_count: int
    issues: list[str] = field(default_factory=list)
    sync_log_id: int | None = None
    patients_processed: int = 0
    patients_added: int = 0
    appointments_synced: int = 0


@dataclass(frozen=True)
class ReclassifyResult:
    """Counts after reclassification, read back from the stored cases."""

    new_counts: CaseCounts
    mappings_count: int = 0
    patients_recomputed: int = 0


@dataclass(frozen=True)
class SyncStatusResult:
    pms_type: PMSType
    latest_run: SyncRun | None = None
    control: SyncControl | None = None

    @property
    def is_running(self) -> bool:
        return self.latest_run is not None and not self.latest_run.is_finished
