"""Nookal payload mapping.

Nookal uses PascalCase keys and splits appointment timestamps into separate
``Date`` and ``StartTime`` fields.
"""

from typing import Any

from ....domain.entities import Appointment, Patient, Practitioner, RawAppointmentType
from ....domain.value_objects import AppointmentStatus, PMSType
from ..parsing import as_id, as_int, clean, parse_date, parse_datetime


def map_practitioner(data: dict[str, Any]) -> Practitioner | None:
    external_id = as_id(data.get("ID"))
    if not external_id:
        return None
    return Practitioner(
        external_id=external_id,
        first_name=clean(data.get("FirstName")) or "",
        last_name=clean(data.get("LastName")) or "",
        display_name=clean(data.get("DisplayName")) or clean(data.get("Name")),
    )


def map_appointment_type(data: dict[str, Any]) -> RawAppointmentType | None:
    external_id = as_id(data.get("ID"))
    name = clean(data.get("Name")) or clean(data.get("AppointmentType"))
    if not external_id or not name:
        return None
    return RawAppointmentType(external_id=external_id, name=name)


def map_patient(data: dict[str, Any]) -> Patient | None:
    external_id = as_id(data.get("ID"))
    if not external_id:
        return None
    return Patient(
        external_id=external_id,
        pms_type=PMSType.NOOKAL,
        first_name=clean(data.get("FirstName")) or "",
        last_name=clean(data.get("LastName")) or "",
        email=clean(data.get("Email")),
        phone=clean(data.get("Phone")) or clean(data.get("Mobile")),
        date_of_birth=parse_date(data.get("DOB")),
        gender=clean(data.get("Gender")),
        address_line_1=clean(data.get("Address")),
        suburb=clean(data.get("Suburb")),
        state=clean(data.get("State")),
        postcode=clean(data.get("Postcode")),
        country=clean(data.get("Country")),
        physio_name=clean(data.get("PrimaryPractitioner")),
        last_modified=parse_datetime(data.get("LastModified")),
    )


def map_appointment(data: dict[str, Any], patient_id: str) -> Appointment | None:
    external_id = as_id(data.get("ID"))
    if not external_id:
        return None

    day = clean(data.get("Date"))
    start = clean(data.get("StartTime"))
    appointment_date = parse_datetime(f"{day} {start}" if day and start else day)
    last_modified = parse_datetime(data.get("LastModified"))
    status = AppointmentStatus.from_pms_label(data.get("Status"))

    return Appointment(
        external_id=external_id,
        pms_type=PMSType.NOOKAL,
        patient_external_id=as_id(data.get("PatientID")) or patient_id,
        appointment_type_id=as_id(data.get("AppointmentTypeID")),
        appointment_type_name=clean(data.get("AppointmentType")),
        appointment_date=appointment_date,
        status=status,
        cancelled_at=last_modified if status == AppointmentStatus.CANCELLED else None,
        did_not_arrive=status == AppointmentStatus.DNA,
        practitioner_external_id=as_id(data.get("PractitionerID")),
        practitioner_name=clean(data.get("Practitioner")),
        duration_minutes=as_int(data.get("Duration")),
        notes=clean(data.get("Notes")),
        last_modified=last_modified,
    )
