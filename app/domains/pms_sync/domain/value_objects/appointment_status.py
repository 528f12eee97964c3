"""
Normalized appointment status shared by every PMS adapter.
"""

from app.core.domain import StatusEnum

_NO_SHOW_MARKERS = ("dna", "not attend", "did not arrive", "no show", "no-show", "noshow")


class AppointmentStatus(StatusEnum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DNA = "dna"

    @classmethod
    def from_pms_label(cls, label: str | None) -> "AppointmentStatus":
        """
        Map a free-text PMS status label.

        Checked in order: completed/attended, cancelled, then the no-show
        family (dna, did not attend, not attended, no show).
        Anything else is scheduled.
        """
        text = (label or "").lower()
        if "completed" in text or ("attended" in text and "not" not in text):
            return cls.COMPLETED
        if "cancel" in text:
            return cls.CANCELLED
        if any(marker in text for marker in _NO_SHOW_MARKERS):
            return cls.DNA
        return cls.SCHEDULED
