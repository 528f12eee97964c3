"""
Practitioner, Patient and Appointment Repository Implementations

SQLAlchemy implementations of the mirrored-record ports. Writes go through
BulkUpserter; transactions are committed by the caller's unit of work.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...application.ports import (
    BulkWriteResult,
    IAppointmentRepository,
    IPatientRepository,
    IPractitionerRepository,
)
from ...domain.entities import Appointment, Patient, Practitioner
from ...domain.exceptions import PartialPersistenceError
from ...domain.services import PatientFunding
from ...domain.value_objects import AppointmentStatus, FundingScheme, PMSType
from ..persistence.sqlalchemy.models import AppointmentModel, PatientModel, PractitionerModel
from .bulk_upsert import DEFAULT_BATCH_SIZE, BulkUpserter

logger = logging.getLogger(__name__)


class SQLAlchemyPractitionerRepository(IPractitionerRepository):
    """SQLAlchemy implementation of practitioner repository."""

    def __init__(self, session: AsyncSession, batch_size: int = DEFAULT_BATCH_SIZE):
        self.session = session
        self._upserter = BulkUpserter(session, PractitionerModel, "practitioner", batch_size=batch_size)

    async def upsert_many(self, user_id: str, pms_type: PMSType, practitioners: list[Practitioner]) -> BulkWriteResult:
        rows = [
            {
                "user_id": user_id,
                "pms_type": pms_type.value,
                "external_id": p.external_id,
                "first_name": p.first_name,
                "last_name": p.last_name,
                "display_name": p.name or None,
                "is_active": True,
            }
            for p in practitioners
        ]
        return await self._upserter.upsert(user_id, pms_type.value, rows)

    async def get_name_index(self, user_id: str, pms_type: PMSType) -> dict[str, str]:
        result = await self.session.execute(
            select(
                PractitionerModel.external_id,
                PractitionerModel.display_name,
                PractitionerModel.first_name,
                PractitionerModel.last_name,
            ).where(PractitionerModel.user_id == user_id, PractitionerModel.pms_type == pms_type.value)
        )
        index: dict[str, str] = {}
        for external_id, display_name, first_name, last_name in result.all():
            name = display_name or f"{first_name or ''} {last_name or ''}".strip()
            if name:
                index[external_id] = name
        return index


class SQLAlchemyPatientRepository(IPatientRepository):
    """SQLAlchemy implementation of patient repository."""

    def __init__(self, session: AsyncSession, batch_size: int = DEFAULT_BATCH_SIZE):
        self.session = session
        self._upserter = BulkUpserter(session, PatientModel, "patient", batch_size=batch_size)

    @staticmethod
    def _to_row(user_id: str, pms_type: PMSType, patient: Patient) -> dict[str, Any]:
        # Funding columns are owned by update_funding, not by the PMS mirror
        return {
            "user_id": user_id,
            "pms_type": pms_type.value,
            "external_id": patient.external_id,
            "first_name": patient.first_name,
            "last_name": patient.last_name,
            "email": patient.email,
            "phone": patient.phone,
            "date_of_birth": patient.date_of_birth,
            "gender": patient.gender,
            "address_line_1": patient.address_line_1,
            "address_line_2": patient.address_line_2,
            "suburb": patient.suburb,
            "state": patient.state,
            "postcode": patient.postcode,
            "country": patient.country,
            "physio_name": patient.physio_name,
            "last_modified": patient.last_modified,
            "is_active": patient.is_active,
        }

    @staticmethod
    def _to_entity(model: PatientModel) -> Patient:
        return Patient(
            id=model.id,
            external_id=model.external_id,
            pms_type=PMSType(model.pms_type),
            user_id=model.user_id,
            first_name=model.first_name or "",
            last_name=model.last_name or "",
            email=model.email,
            phone=model.phone,
            date_of_birth=model.date_of_birth,
            gender=model.gender,
            address_line_1=model.address_line_1,
            address_line_2=model.address_line_2,
            suburb=model.suburb,
            state=model.state,
            postcode=model.postcode,
            country=model.country,
            physio_name=model.physio_name,
            last_modified=model.last_modified,
            is_active=model.is_active,
            patient_type=FundingScheme(model.patient_type) if model.patient_type else None,
            sessions_used=model.sessions_used or 0,
            quota=model.quota or 0,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    async def upsert_many(self, user_id: str, pms_type: PMSType, patients: list[Patient]) -> BulkWriteResult:
        rows = [self._to_row(user_id, pms_type, p) for p in patients]
        return await self._upserter.upsert(user_id, pms_type.value, rows)

    async def get_id_index(self, user_id: str, pms_type: PMSType) -> dict[str, int]:
        result = await self.session.execute(
            select(PatientModel.external_id, PatientModel.id).where(
                PatientModel.user_id == user_id, PatientModel.pms_type == pms_type.value
            )
        )
        return {external_id: patient_id for external_id, patient_id in result.all()}

    async def list_patients(
        self, user_id: str, pms_type: PMSType, external_ids: Iterable[str] | None = None
    ) -> list[Patient]:
        query = select(PatientModel).where(PatientModel.user_id == user_id, PatientModel.pms_type == pms_type.value)
        if external_ids is not None:
            ids = list(external_ids)
            if not ids:
                return []
            query = query.where(PatientModel.external_id.in_(ids))
        result = await self.session.execute(query.order_by(PatientModel.id))
        return [self._to_entity(model) for model in result.scalars().all()]

    async def update_funding(
        self, user_id: str, pms_type: PMSType, funding: Mapping[str, PatientFunding]
    ) -> BulkWriteResult:
        result = BulkWriteResult()
        now = datetime.now(UTC)
        for external_id, state in funding.items():
            stmt = (
                update(PatientModel)
                .where(
                    PatientModel.user_id == user_id,
                    PatientModel.pms_type == pms_type.value,
                    PatientModel.external_id == external_id,
                )
                .values(
                    patient_type=state.patient_type.value if state.patient_type else None,
                    sessions_used=state.sessions_used,
                    quota=state.quota,
                    updated_at=now,
                )
            )
            try:
                async with self.session.begin_nested():
                    outcome = await self.session.execute(stmt)
            except SQLAlchemyError as e:
                failure = PartialPersistenceError("patient funding", external_id, str(getattr(e, "orig", e) or e))
                logger.error(failure.message)
                result.failures.append(failure)
                continue
            if not outcome.rowcount:
                logger.warning(f"No stored {pms_type.value} patient {external_id} to update funding on")
                continue
            result.written += 1
        return result


class SQLAlchemyAppointmentRepository(IAppointmentRepository):
    """SQLAlchemy implementation of appointment repository."""

    def __init__(self, session: AsyncSession, batch_size: int = DEFAULT_BATCH_SIZE):
        self.session = session
        self._upserter = BulkUpserter(session, AppointmentModel, "appointment", batch_size=batch_size)

    @staticmethod
    def _to_row(user_id: str, pms_type: PMSType, appointment: Appointment) -> dict[str, Any]:
        return {
            "user_id": user_id,
            "pms_type": pms_type.value,
            "external_id": appointment.external_id,
            "patient_external_id": appointment.patient_external_id,
            "patient_id": appointment.patient_id,
            "appointment_type_id": appointment.appointment_type_id,
            "appointment_type_name": appointment.appointment_type_name,
            "appointment_date": appointment.appointment_date,
            "status": appointment.status.value,
            "cancelled_at": appointment.cancelled_at,
            "did_not_arrive": appointment.did_not_arrive,
            "practitioner_external_id": appointment.practitioner_external_id,
            "practitioner_name": appointment.practitioner_name,
            "duration_minutes": appointment.duration_minutes,
            "notes": appointment.notes,
            "last_modified": appointment.last_modified,
        }

    @staticmethod
    def _to_entity(model: AppointmentModel) -> Appointment:
        return Appointment(
            id=model.id,
            external_id=model.external_id,
            pms_type=PMSType(model.pms_type),
            user_id=model.user_id,
            patient_external_id=model.patient_external_id,
            patient_id=model.patient_id,
            appointment_type_id=model.appointment_type_id,
            appointment_type_name=model.appointment_type_name,
            appointment_date=model.appointment_date,
            status=AppointmentStatus.from_string(model.status),
            cancelled_at=model.cancelled_at,
            did_not_arrive=model.did_not_arrive,
            practitioner_external_id=model.practitioner_external_id,
            practitioner_name=model.practitioner_name,
            duration_minutes=model.duration_minutes,
            notes=model.notes,
            last_modified=model.last_modified,
        )

    async def upsert_many(
        self, user_id: str, pms_type: PMSType, appointments: list[Appointment]
    ) -> BulkWriteResult:
        rows = [self._to_row(user_id, pms_type, a) for a in appointments]
        return await self._upserter.upsert(user_id, pms_type.value, rows)

    async def list_appointments(
        self, user_id: str, pms_type: PMSType, patient_external_ids: Iterable[str] | None = None
    ) -> list[Appointment]:
        query = select(AppointmentModel).where(
            AppointmentModel.user_id == user_id, AppointmentModel.pms_type == pms_type.value
        )
        if patient_external_ids is not None:
            ids = list(patient_external_ids)
            if not ids:
                return []
            query = query.where(AppointmentModel.patient_external_id.in_(ids))
        result = await self.session.execute(query.order_by(AppointmentModel.appointment_date))
        return [self._to_entity(model) for model in result.scalars().all()]

    async def count_for_types(self, user_id: str, pms_type: PMSType, mapping: Mapping[str, FundingScheme]) -> int:
        type_ids = list(mapping.keys())
        if not type_ids:
            return 0
        result = await self.session.execute(
            select(func.count())
            .select_from(AppointmentModel)
            .where(
                AppointmentModel.user_id == user_id,
                AppointmentModel.pms_type == pms_type.value,
                AppointmentModel.appointment_type_id.in_(type_ids),
            )
        )
        return int(result.scalar_one())
