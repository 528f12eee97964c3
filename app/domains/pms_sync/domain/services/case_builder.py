"""
Case Builder

Builds the case read-model row for a classified patient.
"""

from collections.abc import Iterable
from datetime import datetime

from ..entities import Appointment, CaseCounts, FundingCase, Patient
from ..value_objects import AppointmentStatus, CasePriority, CaseStatus, FundingScheme

UNKNOWN_PRACTITIONER = "Unknown Practitioner"


def case_standing(scheme: FundingScheme, remaining: int) -> tuple[CaseStatus, CasePriority, str | None]:
    """Status, priority and alert text for the sessions left."""
    if remaining <= 0:
        return CaseStatus.CRITICAL, CasePriority.URGENT, f"{scheme.value} quota exhausted - renewal needed immediately"
    if remaining <= 2:
        return (
            CaseStatus.WARNING,
            CasePriority.HIGH,
            f"{scheme.value} referral expires soon - {remaining} sessions left",
        )
    if remaining <= 3:
        return (
            CaseStatus.WARNING,
            CasePriority.NORMAL,
            f"{scheme.value} sessions running low - {remaining} sessions left",
        )
    return CaseStatus.ACTIVE, CasePriority.LOW, None


def _latest(appointments: Iterable[Appointment]) -> Appointment | None:
    dated = [a for a in appointments if a.appointment_date is not None]
    return max(dated, key=lambda a: a.appointment_date) if dated else None


def build_case(patient: Patient, appointments: Iterable[Appointment], now: datetime) -> FundingCase | None:
    """
    Build the case for ``patient``.

    Returns None for a patient without a funding type. The patient's
    sessions_used and quota must already be up to date.
    """
    if patient.patient_type is None or patient.user_id is None or patient.pms_type is None:
        return None

    appointments = list(appointments)
    scheme = patient.patient_type
    remaining = patient.quota - patient.sessions_used
    status, priority, alert = case_standing(scheme, remaining)

    latest = _latest(appointments)
    last_visit = _latest(a for a in appointments if a.is_countable(now))
    upcoming = [
        a
        for a in appointments
        if a.appointment_date is not None
        and a.appointment_date > now
        and a.cancelled_at is None
        and a.status != AppointmentStatus.CANCELLED
    ]
    next_visit = min(upcoming, key=lambda a: a.appointment_date) if upcoming else None

    physio_name = (latest.practitioner_name if latest else None) or patient.physio_name or UNKNOWN_PRACTITIONER

    return FundingCase(
        user_id=patient.user_id,
        pms_type=patient.pms_type,
        patient_id=patient.id,
        patient_external_id=patient.external_id,
        case_number=f"CASE-{patient.external_id}",
        case_title=f"{patient.full_name} - {scheme.value}",
        program_type=scheme,
        quota=patient.quota,
        sessions_used=patient.sessions_used,
        status=status,
        priority=priority,
        alert_message=alert,
        is_alert_active=alert is not None,
        physio_name=physio_name,
        appointment_type_name=latest.appointment_type_name if latest else None,
        last_visit_date=last_visit.appointment_date if last_visit else None,
        next_visit_date=next_visit.appointment_date if next_visit else None,
    )


def count_cases(cases: Iterable[FundingCase], total_appointments: int = 0) -> CaseCounts:
    """Scheme counts over a set of case rows."""
    cases = list(cases)
    return CaseCounts(
        wc_patients=sum(1 for c in cases if c.program_type == FundingScheme.WC),
        epc_patients=sum(1 for c in cases if c.program_type == FundingScheme.EPC),
        total_appointments=total_appointments,
        action_needed_patients=sum(1 for c in cases if c.needs_action),
        overdue_patients_count=sum(1 for c in cases if c.is_overdue),
    )
