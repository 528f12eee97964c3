# ============================================================================
# SCOPE: APPLICATION LAYER (PMS Sync)
# Description: Recomputes stored patient funding from stored appointments.
# ============================================================================
"""Funding Refresh Service.

Shared by the sync orchestrator and the reclassification engine. Funding is
always derived from every stored appointment of a patient, so an
incremental sync that fetched only recent bookings still counts the older
ones.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime

from ...domain.entities import Appointment
from ...domain.services import FundingQuotaCalculator, PatientFunding
from ...domain.value_objects import FundingScheme, PMSType
from ..ports import BulkWriteResult, IAppointmentRepository, IPatientRepository

logger = logging.getLogger(__name__)


class FundingRefreshService:
    """Derives and writes patient_type, sessions_used and quota."""

    def __init__(
        self,
        patient_repository: IPatientRepository,
        appointment_repository: IAppointmentRepository,
        calculator: FundingQuotaCalculator | None = None,
    ):
        self._patients = patient_repository
        self._appointments = appointment_repository
        self._calculator = calculator or FundingQuotaCalculator()

    async def appointments_by_patient(
        self, user_id: str, pms_type: PMSType, external_ids: Iterable[str] | None = None
    ) -> dict[str, list[Appointment]]:
        grouped: dict[str, list[Appointment]] = defaultdict(list)
        for appointment in await self._appointments.list_appointments(user_id, pms_type, external_ids):
            if appointment.patient_external_id:
                grouped[appointment.patient_external_id].append(appointment)
        return grouped

    def calculate(
        self,
        grouped: Mapping[str, list[Appointment]],
        external_ids: Iterable[str],
        mapping: Mapping[str, FundingScheme],
        now: datetime,
    ) -> dict[str, PatientFunding]:
        return {pid: self._calculator.calculate(grouped.get(pid, []), mapping, now) for pid in external_ids}

    async def update(
        self, user_id: str, pms_type: PMSType, funding: Mapping[str, PatientFunding]
    ) -> BulkWriteResult:
        return await self._patients.update_funding(user_id, pms_type, funding)

    async def refresh(
        self,
        user_id: str,
        pms_type: PMSType,
        external_ids: Iterable[str],
        mapping: Mapping[str, FundingScheme],
        now: datetime,
    ) -> BulkWriteResult:
        """Recompute and store funding for the given patients."""
        ids = list(dict.fromkeys(external_ids))
        if not ids:
            return BulkWriteResult()
        grouped = await self.appointments_by_patient(user_id, pms_type, ids)
        funding = self.calculate(grouped, ids, mapping, now)
        result = await self.update(user_id, pms_type, funding)
        logger.info(
            f"Funding refreshed for {result.written} {pms_type.value} patients "
            f"({sum(1 for f in funding.values() if f.patient_type)} classified)"
        )
        return result
