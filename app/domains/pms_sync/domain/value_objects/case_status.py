"""
Case read-model status values.
"""

from app.core.domain import StatusEnum


class CaseStatus(StatusEnum):
    ACTIVE = "active"
    WARNING = "warning"
    CRITICAL = "critical"


class CasePriority(StatusEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"
