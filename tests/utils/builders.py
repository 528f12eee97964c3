"""
Test data builders using the Builder pattern.

Provides fluent interfaces for constructing PMS records with sensible defaults.
"""

from datetime import UTC, datetime

from app.domains.pms_sync.application.ports import PatientWithAppointments
from app.domains.pms_sync.domain.entities import Appointment, Patient
from app.domains.pms_sync.domain.value_objects import AppointmentStatus, FundingScheme, PMSType


class AppointmentBuilder:
    """Builder for creating appointment test data."""

    def __init__(self, external_id: str = "A-1"):
        self._data = {
            "external_id": external_id,
            "patient_external_id": "P-1",
            "appointment_type_id": "T-EPC",
            "appointment_date": datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
            "status": AppointmentStatus.COMPLETED,
            "practitioner_external_id": "PR-1",
        }

    def for_patient(self, patient_external_id: str) -> "AppointmentBuilder":
        """Set the owning patient."""
        self._data["patient_external_id"] = patient_external_id
        return self

    def of_type(self, type_id: str) -> "AppointmentBuilder":
        """Set the PMS appointment type id."""
        self._data["appointment_type_id"] = type_id
        return self

    def on(self, when: datetime) -> "AppointmentBuilder":
        """Set the appointment date."""
        self._data["appointment_date"] = when
        return self

    def cancelled(self, at: datetime | None = None) -> "AppointmentBuilder":
        """Mark as cancelled."""
        self._data["status"] = AppointmentStatus.CANCELLED
        self._data["cancelled_at"] = at or self._data["appointment_date"]
        return self

    def did_not_arrive(self) -> "AppointmentBuilder":
        """Mark as a no-show."""
        self._data["status"] = AppointmentStatus.DNA
        self._data["did_not_arrive"] = True
        return self

    def with_practitioner(self, practitioner_external_id: str | None) -> "AppointmentBuilder":
        self._data["practitioner_external_id"] = practitioner_external_id
        return self

    def build(self) -> Appointment:
        """Build and return the appointment."""
        return Appointment(**self._data)


class PatientBuilder:
    """Builder for patients together with their appointments."""

    def __init__(self, external_id: str = "P-1"):
        self._external_id = external_id
        self._first_name = "Jane"
        self._last_name = "Citizen"
        self._funding: tuple[FundingScheme | None, int, int] = (None, 0, 0)
        self._pms_type: PMSType | None = None
        self._user_id: str | None = None
        self._appointments: list[Appointment] = []

    def named(self, first_name: str, last_name: str) -> "PatientBuilder":
        self._first_name = first_name
        self._last_name = last_name
        return self

    def owned_by(self, user_id: str, pms_type: PMSType = PMSType.CLINIKO) -> "PatientBuilder":
        """Set the owning clinic and PMS."""
        self._user_id = user_id
        self._pms_type = pms_type
        return self

    def with_funding(self, scheme: FundingScheme | None, sessions_used: int, quota: int) -> "PatientBuilder":
        """Set already derived funding state."""
        self._funding = (scheme, sessions_used, quota)
        return self

    def with_appointment(self, type_id: str, when: datetime, external_id: str | None = None) -> "PatientBuilder":
        """Add a completed appointment of the given type."""
        appointment_id = external_id or f"{self._external_id}-A{len(self._appointments) + 1}"
        self._appointments.append(
            AppointmentBuilder(appointment_id).for_patient(self._external_id).of_type(type_id).on(when).build()
        )
        return self

    def build(self) -> Patient:
        """Build and return the patient."""
        scheme, used, quota = self._funding
        return Patient(
            external_id=self._external_id,
            user_id=self._user_id,
            pms_type=self._pms_type,
            first_name=self._first_name,
            last_name=self._last_name,
            patient_type=scheme,
            sessions_used=used,
            quota=quota,
        )

    def build_record(self) -> PatientWithAppointments:
        """Build the patient with its appointments, as a PMS client returns it."""
        return PatientWithAppointments(patient=self.build(), appointments=list(self._appointments))
