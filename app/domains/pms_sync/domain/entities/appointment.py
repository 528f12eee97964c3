"""
Appointment Entity for PMS Sync Domain
"""

from dataclasses import dataclass
from datetime import datetime

from app.core.domain import Entity

from ..value_objects import AppointmentStatus, PMSType


@dataclass
class Appointment(Entity[int]):
    """
    Appointment normalized across PMS variants.

    ``patient_id`` is the local patient reference and stays None until the
    patient has been resolved by ``patient_external_id``.
    """

    external_id: str = ""
    pms_type: PMSType | None = None
    user_id: str | None = None

    patient_external_id: str | None = None
    patient_id: int | None = None

    appointment_type_id: str | None = None
    appointment_type_name: str | None = None
    appointment_date: datetime | None = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    cancelled_at: datetime | None = None
    did_not_arrive: bool = False

    practitioner_external_id: str | None = None
    practitioner_name: str | None = None
    duration_minutes: int | None = None
    notes: str | None = None
    last_modified: datetime | None = None

    def is_countable(self, now: datetime) -> bool:
        """
        Whether the appointment counts toward a quota.

        Only attended appointments in the past count: not cancelled,
        not a no-show and dated on or before ``now``.
        """
        if self.cancelled_at is not None or self.did_not_arrive:
            return False
        if self.status in (AppointmentStatus.CANCELLED, AppointmentStatus.DNA):
            return False
        if self.appointment_date is None:
            return False
        return self.appointment_date <= now
