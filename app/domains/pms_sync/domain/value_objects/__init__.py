"""
PMS Sync Domain Value Objects
"""

from .appointment_status import AppointmentStatus
from .case_status import CasePriority, CaseStatus
from .funding import FundingScheme, FundingTags, QuotaPolicy, normalize_tags
from .pms_type import PMSType
from .sync_state import SyncState, SyncStatus, SyncType

__all__ = [
    "AppointmentStatus",
    "CasePriority",
    "CaseStatus",
    "FundingScheme",
    "FundingTags",
    "QuotaPolicy",
    "normalize_tags",
    "PMSType",
    "SyncState",
    "SyncStatus",
    "SyncType",
]
