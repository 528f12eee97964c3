"""
Case Repository Implementation

Rebuilds the ``cases`` read-model from stored patients and appointments and
reports dashboard counts straight from the persisted rows.
"""

import logging
from collections import defaultdict
from datetime import datetime

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...application.ports import ICaseRepository
from ...domain.entities import Appointment, CaseCounts, FundingCase
from ...domain.services import build_case
from ...domain.value_objects import FundingScheme, PMSType
from ..persistence.sqlalchemy.models import AppointmentModel, AppointmentTypeModel, CaseModel
from .record_repositories import SQLAlchemyAppointmentRepository, SQLAlchemyPatientRepository

logger = logging.getLogger(__name__)


class SQLAlchemyCaseRepository(ICaseRepository):
    """SQLAlchemy implementation of the case read-model."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._patients = SQLAlchemyPatientRepository(session)
        self._appointments = SQLAlchemyAppointmentRepository(session)

    @staticmethod
    def _to_model(case: FundingCase) -> CaseModel:
        return CaseModel(
            user_id=case.user_id,
            pms_type=case.pms_type.value,
            patient_id=case.patient_id,
            patient_external_id=case.patient_external_id,
            case_number=case.case_number,
            case_title=case.case_title,
            program_type=case.program_type.value,
            quota=case.quota,
            sessions_used=case.sessions_used,
            sessions_remaining=case.sessions_remaining,
            status=case.status.value,
            priority=case.priority.value,
            alert_message=case.alert_message,
            is_alert_active=case.is_alert_active,
            physio_name=case.physio_name,
            appointment_type_name=case.appointment_type_name,
            last_visit_date=case.last_visit_date,
            next_visit_date=case.next_visit_date,
        )

    async def repopulate(self, user_id: str, pms_type: PMSType, now: datetime) -> int:
        patients = [
            p for p in await self._patients.list_patients(user_id, pms_type) if p.patient_type is not None
        ]
        by_patient: dict[str, list[Appointment]] = defaultdict(list)
        if patients:
            appointments = await self._appointments.list_appointments(
                user_id, pms_type, [p.external_id for p in patients]
            )
            for appointment in appointments:
                if appointment.patient_external_id:
                    by_patient[appointment.patient_external_id].append(appointment)

        await self.session.execute(
            delete(CaseModel).where(CaseModel.user_id == user_id, CaseModel.pms_type == pms_type.value)
        )

        cases = [
            case
            for case in (build_case(p, by_patient.get(p.external_id, []), now) for p in patients)
            if case is not None
        ]
        self.session.add_all(self._to_model(case) for case in cases)
        await self.session.flush()

        logger.info(f"Rebuilt {len(cases)} {pms_type.value} cases for user {user_id}")
        return len(cases)

    async def count(self, user_id: str, pms_type: PMSType | None = None) -> CaseCounts:
        case_filters = [CaseModel.user_id == user_id]
        if pms_type is not None:
            case_filters.append(CaseModel.pms_type == pms_type.value)

        row = (
            await self.session.execute(
                select(
                    func.count().filter(CaseModel.program_type == FundingScheme.WC.value),
                    func.count().filter(CaseModel.program_type == FundingScheme.EPC.value),
                    func.count().filter(CaseModel.quota - CaseModel.sessions_used <= 2),
                    func.count().filter(CaseModel.sessions_used > CaseModel.quota),
                ).where(*case_filters)
            )
        ).one()

        appointment_filters = [AppointmentModel.user_id == user_id]
        if pms_type is not None:
            appointment_filters.append(AppointmentModel.pms_type == pms_type.value)
        total_appointments = (
            await self.session.execute(
                select(func.count())
                .select_from(AppointmentModel)
                .join(
                    AppointmentTypeModel,
                    and_(
                        AppointmentTypeModel.user_id == AppointmentModel.user_id,
                        AppointmentTypeModel.pms_type == AppointmentModel.pms_type,
                        AppointmentTypeModel.appointment_id == AppointmentModel.appointment_type_id,
                    ),
                )
                .where(*appointment_filters)
            )
        ).scalar_one()

        return CaseCounts(
            wc_patients=int(row[0] or 0),
            epc_patients=int(row[1] or 0),
            total_appointments=int(total_appointments or 0),
            action_needed_patients=int(row[2] or 0),
            overdue_patients_count=int(row[3] or 0),
        )
