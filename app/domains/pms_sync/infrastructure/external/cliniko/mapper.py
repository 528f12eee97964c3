# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: Cliniko payload to domain entity mapping.
# ============================================================================
"""Cliniko Payload Mapper.

Cliniko references related resources by ``links.self`` URLs rather than
embedding ids, so most ids are taken from the last path segment.
"""

from typing import Any

from ....domain.entities import Appointment, Patient, Practitioner, RawAppointmentType
from ....domain.value_objects import AppointmentStatus, PMSType
from ..parsing import as_id, clean, link_id, parse_date, parse_datetime


def resource_id(resource: dict[str, Any]) -> str | None:
    """Id of a Cliniko resource, falling back to its own ``links.self``."""
    return as_id(resource.get("id")) or link_id(resource)


def map_practitioner(data: dict[str, Any]) -> Practitioner | None:
    external_id = resource_id(data)
    if not external_id:
        return None
    return Practitioner(
        external_id=external_id,
        first_name=clean(data.get("first_name")) or "",
        last_name=clean(data.get("last_name")) or "",
        display_name=clean(data.get("display_name")),
    )


def map_appointment_type(data: dict[str, Any]) -> RawAppointmentType | None:
    external_id = resource_id(data)
    name = clean(data.get("name"))
    if not external_id or not name:
        return None
    return RawAppointmentType(external_id=external_id, name=name)


def _phone(data: dict[str, Any]) -> str | None:
    phone = clean(data.get("phone_number"))
    if phone:
        return phone
    for entry in data.get("patient_phone_numbers") or []:
        if isinstance(entry, dict) and clean(entry.get("number")):
            return clean(entry.get("number"))
    return None


def map_patient(data: dict[str, Any]) -> Patient | None:
    external_id = resource_id(data)
    if not external_id:
        return None
    return Patient(
        external_id=external_id,
        pms_type=PMSType.CLINIKO,
        first_name=clean(data.get("first_name")) or "",
        last_name=clean(data.get("last_name")) or "",
        email=clean(data.get("email")),
        phone=_phone(data),
        date_of_birth=parse_date(data.get("date_of_birth")),
        gender=clean(data.get("sex")) or clean(data.get("gender")),
        address_line_1=clean(data.get("address_1")),
        address_line_2=clean(data.get("address_2")),
        suburb=clean(data.get("city")),
        state=clean(data.get("state")),
        postcode=clean(data.get("post_code")),
        country=clean(data.get("country")),
        last_modified=parse_datetime(data.get("updated_at")),
    )


def booking_status(data: dict[str, Any]) -> AppointmentStatus:
    if data.get("cancelled_at"):
        return AppointmentStatus.CANCELLED
    if data.get("did_not_arrive"):
        return AppointmentStatus.DNA
    if data.get("patient_arrived"):
        return AppointmentStatus.COMPLETED
    return AppointmentStatus.SCHEDULED


def map_booking(data: dict[str, Any]) -> Appointment | None:
    """Map a booking. Bookings without a patient (unavailable blocks) are skipped."""
    external_id = resource_id(data)
    patient_external_id = link_id(data.get("patient"))
    if not external_id or not patient_external_id:
        return None

    starts_at = parse_datetime(data.get("starts_at"))
    ends_at = parse_datetime(data.get("ends_at"))
    duration = None
    if starts_at and ends_at:
        duration = round((ends_at - starts_at).total_seconds() / 60)

    return Appointment(
        external_id=external_id,
        pms_type=PMSType.CLINIKO,
        patient_external_id=patient_external_id,
        appointment_type_id=link_id(data.get("appointment_type")),
        appointment_date=starts_at,
        status=booking_status(data),
        cancelled_at=parse_datetime(data.get("cancelled_at")),
        did_not_arrive=bool(data.get("did_not_arrive")),
        practitioner_external_id=link_id(data.get("practitioner")),
        duration_minutes=duration,
        notes=clean(data.get("notes")),
        last_modified=parse_datetime(data.get("updated_at")),
    )
