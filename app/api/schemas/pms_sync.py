"""
PMS Sync API Schemas

Pydantic models for the PMS sync API. Field names are snake_case in Python
and camelCase on the wire.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domains.pms_sync.application.dto import SyncStatusResult, SyncSummary
from app.domains.pms_sync.domain.entities import CaseCounts, SyncControl, SyncRun
from app.domains.pms_sync.domain.value_objects import PMSType


class CamelModel(BaseModel):
    """Base schema accepting and emitting camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Requests
# =============================================================================


class PMSCredentialsRequest(CamelModel):
    """Schema for connecting a PMS or running a sync with a key."""

    pms_type: PMSType = Field(..., description="cliniko, nookal or halaxy")
    api_key: str = Field(..., min_length=1, description="PMS API key")
    clinic_id: str | None = Field(default=None, description="Optional PMS clinic/business id")

    model_config = ConfigDict(
        json_schema_extra={"example": {"pmsType": "cliniko", "apiKey": "MS0xLWFiY2RlZg-au2"}},
    )


class FundingTagsRequest(CamelModel):
    """Schema for replacing the clinic's funding tags."""

    wc_tags: list[str] = Field(default_factory=list, description="Tags marking WC appointment types")
    epc_tags: list[str] = Field(default_factory=list, description="Tags marking EPC appointment types")


# =============================================================================
# Responses
# =============================================================================


class ConnectResponse(CamelModel):
    connected: bool
    pms_type: PMSType


class SyncResponse(CamelModel):
    """Outcome of a sync run."""

    wc_patients: int
    epc_patients: int
    total_appointments: int
    appointment_types_count: int
    issues: list[str] | None = None
    sync_log_id: int | None = None

    @classmethod
    def from_summary(cls, summary: SyncSummary) -> "SyncResponse":
        return cls(
            wc_patients=summary.wc_patients,
            epc_patients=summary.epc_patients,
            total_appointments=summary.total_appointments,
            appointment_types_count=summary.appointment_types_count,
            issues=list(summary.issues) or None,
            sync_log_id=summary.sync_log_id,
        )


class CountsResponse(CamelModel):
    wc_patients: int
    epc_patients: int
    total_appointments: int
    action_needed_patients: int
    overdue_patients_count: int

    @classmethod
    def from_counts(cls, counts: CaseCounts) -> "CountsResponse":
        return cls(
            wc_patients=counts.wc_patients,
            epc_patients=counts.epc_patients,
            total_appointments=counts.total_appointments,
            action_needed_patients=counts.action_needed_patients,
            overdue_patients_count=counts.overdue_patients_count,
        )


class TagsUpdateResponse(CamelModel):
    new_counts: CountsResponse


class SyncLogResponse(CamelModel):
    id: int | None
    sync_type: str
    status: str
    state: str
    patients_processed: int
    patients_added: int
    appointments_synced: int
    errors_count: int
    started_at: datetime
    completed_at: datetime | None = None
    error_details: dict | None = None

    @classmethod
    def from_run(cls, run: SyncRun) -> "SyncLogResponse":
        return cls(
            id=run.id,
            sync_type=run.sync_type.value,
            status=run.status.value,
            state=run.state.value,
            patients_processed=run.patients_processed,
            patients_added=run.patients_added,
            appointments_synced=run.appointments_synced,
            errors_count=run.errors_count,
            started_at=run.started_at,
            completed_at=run.completed_at,
            error_details=run.error_details,
        )


class SyncControlResponse(CamelModel):
    pms_type: PMSType
    is_enabled: bool
    sync_frequency_hours: int
    last_sync_at: datetime | None = None
    next_sync_at: datetime | None = None

    @classmethod
    def from_control(cls, control: SyncControl) -> "SyncControlResponse":
        return cls(
            pms_type=control.pms_type,
            is_enabled=control.is_enabled,
            sync_frequency_hours=control.sync_frequency_hours,
            last_sync_at=control.last_sync_at,
            next_sync_at=control.next_sync_at,
        )


class SyncStatusResponse(CamelModel):
    pms_type: PMSType
    is_running: bool
    latest_sync: SyncLogResponse | None = None
    control: SyncControlResponse | None = None

    @classmethod
    def from_result(cls, result: SyncStatusResult) -> "SyncStatusResponse":
        return cls(
            pms_type=result.pms_type,
            is_running=result.is_running,
            latest_sync=SyncLogResponse.from_run(result.latest_run) if result.latest_run else None,
            control=SyncControlResponse.from_control(result.control) if result.control else None,
        )
