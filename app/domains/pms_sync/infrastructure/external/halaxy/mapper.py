"""Halaxy payload mapping."""

from typing import Any

from ....domain.entities import Appointment, Patient, Practitioner, RawAppointmentType
from ....domain.value_objects import AppointmentStatus, PMSType
from ..parsing import as_id, as_int, clean, parse_date, parse_datetime


def _nested(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def map_practitioner(data: dict[str, Any]) -> Practitioner | None:
    external_id = as_id(data.get("id"))
    if not external_id:
        return None
    return Practitioner(
        external_id=external_id,
        first_name=clean(data.get("first_name")) or "",
        last_name=clean(data.get("last_name")) or "",
        display_name=clean(data.get("name")) or clean(data.get("display_name")),
    )


def map_appointment_type(data: dict[str, Any]) -> RawAppointmentType | None:
    external_id = as_id(data.get("id"))
    name = clean(data.get("name"))
    if not external_id or not name:
        return None
    return RawAppointmentType(external_id=external_id, name=name)


def map_patient(data: dict[str, Any]) -> Patient | None:
    external_id = as_id(data.get("id"))
    if not external_id:
        return None
    address = _nested(data, "address")
    return Patient(
        external_id=external_id,
        pms_type=PMSType.HALAXY,
        first_name=clean(data.get("first_name")) or "",
        last_name=clean(data.get("last_name")) or "",
        email=clean(data.get("email")),
        phone=clean(data.get("mobile_phone")) or clean(data.get("home_phone")),
        date_of_birth=parse_date(data.get("date_of_birth")),
        gender=clean(data.get("gender")),
        address_line_1=clean(address.get("street_address")),
        suburb=clean(address.get("suburb")),
        state=clean(address.get("state")),
        postcode=clean(address.get("postcode")),
        country=clean(address.get("country")),
        physio_name=clean(_nested(data, "primary_practitioner").get("name")),
        last_modified=parse_datetime(data.get("updated_at")),
    )


def map_appointment(data: dict[str, Any], patient_id: str) -> Appointment | None:
    external_id = as_id(data.get("id"))
    if not external_id:
        return None

    appointment_type = _nested(data, "appointment_type")
    practitioner = _nested(data, "practitioner")
    cancelled_at = parse_datetime(data.get("cancelled_at"))
    did_not_arrive = bool(data.get("did_not_arrive"))

    status = AppointmentStatus.from_pms_label(data.get("status"))
    if cancelled_at is not None:
        status = AppointmentStatus.CANCELLED
    elif did_not_arrive:
        status = AppointmentStatus.DNA

    return Appointment(
        external_id=external_id,
        pms_type=PMSType.HALAXY,
        patient_external_id=as_id(data.get("patient_id")) or patient_id,
        appointment_type_id=as_id(appointment_type.get("id")),
        appointment_type_name=clean(appointment_type.get("name")),
        appointment_date=parse_datetime(data.get("start_time")),
        status=status,
        cancelled_at=cancelled_at,
        did_not_arrive=did_not_arrive or status == AppointmentStatus.DNA,
        practitioner_external_id=as_id(practitioner.get("id")),
        practitioner_name=clean(practitioner.get("name")),
        duration_minutes=as_int(data.get("duration_minutes")),
        notes=clean(data.get("notes")),
        last_modified=parse_datetime(data.get("updated_at")),
    )
