"""
Practitioner, Patient and Appointment Repository Ports

Bulk writes are upserts on the natural key (user_id, external_id, pms_type)
and report per-record failures instead of raising.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ...domain.entities import Appointment, Patient, Practitioner
from ...domain.exceptions import PartialPersistenceError
from ...domain.services import PatientFunding
from ...domain.value_objects import FundingScheme, PMSType


@dataclass
class BulkWriteResult:
    """Outcome of a bulk upsert."""

    written: int = 0
    inserted: int = 0
    failures: list[PartialPersistenceError] = field(default_factory=list)

    def merge(self, other: "BulkWriteResult") -> "BulkWriteResult":
        return BulkWriteResult(
            written=self.written + other.written,
            inserted=self.inserted + other.inserted,
            failures=[*self.failures, *other.failures],
        )


@runtime_checkable
class IPractitionerRepository(Protocol):
    async def upsert_many(self, user_id: str, pms_type: PMSType, practitioners: list[Practitioner]) -> BulkWriteResult:
        """Upsert practitioners."""
        ...

    async def get_name_index(self, user_id: str, pms_type: PMSType) -> dict[str, str]:
        """Map external practitioner id to display name."""
        ...


@runtime_checkable
class IPatientRepository(Protocol):
    async def upsert_many(self, user_id: str, pms_type: PMSType, patients: list[Patient]) -> BulkWriteResult:
        """Upsert patients. ``inserted`` counts rows that did not exist before."""
        ...

    async def get_id_index(self, user_id: str, pms_type: PMSType) -> dict[str, int]:
        """Map external patient id to local id."""
        ...

    async def list_patients(
        self, user_id: str, pms_type: PMSType, external_ids: Iterable[str] | None = None
    ) -> list[Patient]:
        """List stored patients, optionally restricted to some external ids."""
        ...

    async def update_funding(
        self, user_id: str, pms_type: PMSType, funding: Mapping[str, PatientFunding]
    ) -> BulkWriteResult:
        """Write derived patient_type/sessions_used/quota keyed by external id."""
        ...


@runtime_checkable
class IAppointmentRepository(Protocol):
    async def upsert_many(
        self, user_id: str, pms_type: PMSType, appointments: list[Appointment]
    ) -> BulkWriteResult:
        """Upsert appointments (patient_id may be None)."""
        ...

    async def list_appointments(
        self, user_id: str, pms_type: PMSType, patient_external_ids: Iterable[str] | None = None
    ) -> list[Appointment]:
        """List stored appointments, optionally for some patients only."""
        ...

    async def count_for_types(self, user_id: str, pms_type: PMSType, mapping: Mapping[str, FundingScheme]) -> int:
        """Number of appointments against any mapped type."""
        ...
