# ============================================================================
# SCOPE: APPLICATION LAYER (PMS Sync)
# Description: PMS client port - uniform capability set over every PMS.
# ============================================================================
"""PMS Client Port.

Every Practice Management System adapter (Cliniko, Nookal, Halaxy) exposes
this capability set. Callers never branch on the concrete adapter type; the
only optional capability, the combined patients-with-appointments fetch, is
advertised through ``supports_combined_fetch``.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ...domain.entities import (
    Appointment,
    AppointmentTypeMapping,
    Patient,
    Practitioner,
    RawAppointmentType,
)
from ...domain.value_objects import FundingTags, PMSType

if TYPE_CHECKING:
    from ..run_context import CancellationToken


@dataclass
class PatientWithAppointments:
    """A patient together with the appointments fetched alongside it."""

    patient: Patient
    appointments: list[Appointment] = field(default_factory=list)


@dataclass
class CombinedFetchResult:
    """Outcome of a combined fetch.

    Patients whose record could not be read are left out of ``records`` and
    listed in ``skipped_patients`` (PMS patient id to reason).
    """

    records: list[PatientWithAppointments] = field(default_factory=list)
    skipped_patients: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class IPMSClient(Protocol):
    """PMS adapter interface.

    Error contract:
    - empty results are returned as empty lists, never raised
    - PMSConnectionError for network/timeout/429/5xx (retryable)
    - PMSAuthError for 401/403 (not retryable)
    - PMSResponseError for malformed payloads (not retryable)

    Implementations: ClinikoClient, NookalClient, HalaxyClient
    """

    pms_type: PMSType
    """Which PMS this client talks to."""

    supports_combined_fetch: bool
    """True when get_patients_with_appointments is available."""

    async def test_connection(self) -> bool:
        """Check the credentials against a cheap endpoint.

        Returns:
            True if the PMS accepted the request, False if it answered with a
            non-auth client error (e.g. wrong region).
        """
        ...

    async def get_practitioners(self) -> list[Practitioner]:
        """List practitioners."""
        ...

    async def get_appointment_types(self) -> list[RawAppointmentType]:
        """List the full appointment-type catalogue."""
        ...

    async def get_patients(self, modified_since: datetime | None = None) -> list[Patient]:
        """List patients, optionally only those modified since a timestamp."""
        ...

    async def get_patient_appointments(self, patient_id: str) -> list[Appointment]:
        """List every appointment of one patient (by PMS patient id)."""
        ...

    async def get_patients_with_appointments(
        self,
        appointment_type_ids: Iterable[str],
        modified_since: datetime | None = None,
    ) -> CombinedFetchResult:
        """Fetch patients with their appointments of the given types in one pass.

        Only available when ``supports_combined_fetch`` is True. A patient
        that cannot be read is skipped and reported, except on PMSAuthError.
        """
        ...

    def classify_types(
        self,
        raw_types: Iterable[RawAppointmentType],
        tags: FundingTags,
    ) -> list[AppointmentTypeMapping]:
        """Classify appointment types against funding tags."""
        ...

    async def close(self) -> None:
        """Close connections and release resources."""
        ...


@runtime_checkable
class IPMSClientFactory(Protocol):
    """Creates PMS clients keyed on PMSType."""

    def validate_credentials(self, pms_type: PMSType, api_key: str) -> None:
        """Raise CredentialFormatError if the key cannot belong to the PMS."""
        ...

    def api_url_for(self, pms_type: PMSType, api_key: str) -> str:
        """Base URL the client for this key will call."""
        ...

    def create_client(
        self,
        pms_type: PMSType,
        api_key: str,
        cancel_token: "CancellationToken | None" = None,
    ) -> IPMSClient:
        """Build a client for the given PMS and key."""
        ...
