"""
Patient Entity for PMS Sync Domain

A patient mirrored from a PMS. The funding fields (patient_type,
sessions_used, quota) are derived and recomputed on every sync or
reclassification.
"""

from dataclasses import dataclass
from datetime import date, datetime

from app.core.domain import Entity

from ..value_objects import FundingScheme, PMSType


@dataclass
class Patient(Entity[int]):
    """
    Patient record normalized across PMS variants.

    Identified by (user_id, pms_type, external_id) once persisted.
    """

    external_id: str = ""
    pms_type: PMSType | None = None
    user_id: str | None = None

    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None

    address_line_1: str | None = None
    address_line_2: str | None = None
    suburb: str | None = None
    state: str | None = None
    postcode: str | None = None
    country: str | None = None

    physio_name: str | None = None
    last_modified: datetime | None = None
    is_active: bool = True

    # Derived funding state
    patient_type: FundingScheme | None = None
    sessions_used: int = 0
    quota: int = 0

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def sessions_remaining(self) -> int:
        return max(0, self.quota - self.sessions_used)
