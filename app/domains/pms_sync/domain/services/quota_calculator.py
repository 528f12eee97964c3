"""
Funding Quota Calculator

Pure functions deriving a patient's funding type and session usage from
classified appointments. Nothing here touches the database.

Rules:
- An appointment counts only if it is not cancelled, not a no-show and
  dated on or before ``now``.
- WC is a lifetime entitlement: every valid WC appointment counts.
- EPC resets each calendar year. The year is the year of the patient's
  most recent valid EPC appointment, not the current year.
- A patient with appointments under both schemes is a WC patient.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from ..entities import Appointment
from ..value_objects import FundingScheme, QuotaPolicy


@dataclass(frozen=True)
class SchemeUsage:
    """Session usage of one patient under one funding scheme."""

    scheme: FundingScheme
    sessions_used: int
    quota: int
    active_year: int | None = None

    @property
    def sessions_remaining(self) -> int:
        return max(0, self.quota - self.sessions_used)


@dataclass(frozen=True)
class PatientFunding:
    """Derived funding state of a patient."""

    patient_type: FundingScheme | None
    usage: SchemeUsage | None = None

    @property
    def sessions_used(self) -> int:
        return self.usage.sessions_used if self.usage else 0

    @property
    def quota(self) -> int:
        return self.usage.quota if self.usage else 0


def scheme_appointments(
    appointments: Iterable[Appointment],
    mapping: Mapping[str, FundingScheme],
    scheme: FundingScheme,
) -> list[Appointment]:
    """Appointments whose type is classified under ``scheme``."""
    return [
        appointment
        for appointment in appointments
        if appointment.appointment_type_id is not None and mapping.get(appointment.appointment_type_id) == scheme
    ]


def calculate_wc_usage(
    appointments: Iterable[Appointment],
    mapping: Mapping[str, FundingScheme],
    now: datetime,
    quota: int = 8,
) -> SchemeUsage:
    """Lifetime count of valid WC appointments."""
    valid = [a for a in scheme_appointments(appointments, mapping, FundingScheme.WC) if a.is_countable(now)]
    return SchemeUsage(scheme=FundingScheme.WC, sessions_used=len(valid), quota=quota)


def calculate_epc_usage(
    appointments: Iterable[Appointment],
    mapping: Mapping[str, FundingScheme],
    now: datetime,
    quota: int = 5,
) -> SchemeUsage:
    """Count of valid EPC appointments in the year of the most recent one."""
    valid = [a for a in scheme_appointments(appointments, mapping, FundingScheme.EPC) if a.is_countable(now)]
    if not valid:
        return SchemeUsage(scheme=FundingScheme.EPC, sessions_used=0, quota=quota)

    latest = max(a.appointment_date for a in valid if a.appointment_date is not None)
    active_year = latest.year
    used = sum(1 for a in valid if a.appointment_date is not None and a.appointment_date.year == active_year)
    return SchemeUsage(scheme=FundingScheme.EPC, sessions_used=used, quota=quota, active_year=active_year)


def derive_patient_type(
    appointments: Iterable[Appointment],
    mapping: Mapping[str, FundingScheme],
) -> FundingScheme | None:
    """
    Funding type from the schemes the patient has appointments against.

    Every appointment is considered, including cancelled or future ones;
    the validity filter only applies to session counts.
    """
    schemes = {
        mapping[a.appointment_type_id]
        for a in appointments
        if a.appointment_type_id is not None and a.appointment_type_id in mapping
    }
    for scheme in FundingScheme.by_priority():
        if scheme in schemes:
            return scheme
    return None


class FundingQuotaCalculator:
    """
    Computes a patient's funding state with a configured quota policy.

    Example:
        ```python
        calculator = FundingQuotaCalculator(QuotaPolicy(wc_quota=8, epc_quota=5))
        funding = calculator.calculate(appointments, {"101": FundingScheme.EPC}, now)
        funding.patient_type, funding.sessions_used
        ```
    """

    def __init__(self, policy: QuotaPolicy | None = None):
        self._policy = policy or QuotaPolicy()

    @property
    def policy(self) -> QuotaPolicy:
        return self._policy

    def usage_for(
        self,
        scheme: FundingScheme,
        appointments: Iterable[Appointment],
        mapping: Mapping[str, FundingScheme],
        now: datetime,
    ) -> SchemeUsage:
        quota = self._policy.quota_for(scheme)
        if scheme == FundingScheme.WC:
            return calculate_wc_usage(appointments, mapping, now, quota)
        return calculate_epc_usage(appointments, mapping, now, quota)

    def calculate(
        self,
        appointments: Iterable[Appointment],
        mapping: Mapping[str, FundingScheme],
        now: datetime,
    ) -> PatientFunding:
        """Patient type plus usage under that type only."""
        appointments = list(appointments)
        patient_type = derive_patient_type(appointments, mapping)
        if patient_type is None:
            return PatientFunding(patient_type=None)
        return PatientFunding(
            patient_type=patient_type,
            usage=self.usage_for(patient_type, appointments, mapping, now),
        )
