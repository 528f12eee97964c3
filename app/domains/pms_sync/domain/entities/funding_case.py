"""
Case read-model.

One case per patient for the funding scheme the patient resolves to.
Cases are rebuilt wholesale from patients and appointments and never
edited by hand.
"""

from dataclasses import dataclass
from datetime import datetime

from ..value_objects import CasePriority, CaseStatus, FundingScheme, PMSType


@dataclass
class FundingCase:
    user_id: str
    pms_type: PMSType
    patient_id: int | None
    patient_external_id: str
    case_number: str
    case_title: str
    program_type: FundingScheme
    quota: int
    sessions_used: int
    status: CaseStatus = CaseStatus.ACTIVE
    priority: CasePriority = CasePriority.LOW
    alert_message: str | None = None
    is_alert_active: bool = False
    physio_name: str | None = None
    appointment_type_name: str | None = None
    last_visit_date: datetime | None = None
    next_visit_date: datetime | None = None

    @property
    def sessions_remaining(self) -> int:
        return max(0, self.quota - self.sessions_used)

    @property
    def needs_action(self) -> bool:
        return self.quota - self.sessions_used <= 2

    @property
    def is_overdue(self) -> bool:
        return self.sessions_used > self.quota


@dataclass(frozen=True)
class CaseCounts:
    """Scheme counts derived from persisted case rows."""

    wc_patients: int = 0
    epc_patients: int = 0
    total_appointments: int = 0
    action_needed_patients: int = 0
    overdue_patients_count: int = 0
