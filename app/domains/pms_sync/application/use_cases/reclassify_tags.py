# ============================================================================
# SCOPE: APPLICATION LAYER (PMS Sync)
# Description: Reclassification after the clinic edits its funding tags.
# ============================================================================
"""Reclassify Tags Use Case.

Re-runs classification against the stored appointment-type catalogue, so no
PMS call is made. Only patients with an appointment against a type in the new
mapping set get their funding recomputed; everyone else keeps what they had.
The returned counts are read back from the rebuilt case rows.
"""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from ...domain.entities import RawAppointmentType, index_mappings
from ...domain.services import AppointmentTypeClassifier
from ...domain.value_objects import FundingTags, PMSType
from ..dto import ReclassifyResult, UpdateTagsRequest
from ..services import FundingRefreshService

if TYPE_CHECKING:
    from ..ports import (
        IAppointmentRepository,
        IAppointmentTypeRepository,
        ICaseRepository,
        IFundingTagRepository,
        IPatientRepository,
        ISyncLock,
        IUnitOfWork,
    )

logger = logging.getLogger(__name__)


class ReclassifyTagsUseCase:
    """Use case for applying a new funding tag vocabulary."""

    def __init__(
        self,
        funding_tag_repository: "IFundingTagRepository",
        appointment_type_repository: "IAppointmentTypeRepository",
        patient_repository: "IPatientRepository",
        appointment_repository: "IAppointmentRepository",
        case_repository: "ICaseRepository",
        sync_lock: "ISyncLock",
        unit_of_work: "IUnitOfWork",
        funding_service: FundingRefreshService | None = None,
        default_tags: FundingTags | None = None,
    ) -> None:
        self._tags = funding_tag_repository
        self._types = appointment_type_repository
        self._cases = case_repository
        self._lock = sync_lock
        self._uow = unit_of_work
        self._funding = funding_service or FundingRefreshService(patient_repository, appointment_repository)
        self._default_tags = default_tags or FundingTags()

    async def execute(self, request: UpdateTagsRequest) -> ReclassifyResult:
        """Store the tags and reclassify every connected PMS.

        Raises:
            SyncInProgressError: If a sync of one of the connections is running.
        """
        tags = FundingTags.create(
            request.wc_tags,
            request.epc_tags,
            default_wc=self._default_tags.wc_tags,
            default_epc=self._default_tags.epc_tags,
        )
        await self._tags.save_tags(request.user_id, tags)
        await self._uow.commit()
        logger.info(f"Funding tags updated for user {request.user_id}: WC={tags.wc_tags} EPC={tags.epc_tags}")

        mappings_count = 0
        recomputed = 0
        for pms_type in PMSType:
            catalog = await self._types.get_catalog(request.user_id, pms_type)
            if not catalog:
                continue
            async with self._lock.hold(request.user_id, pms_type):
                stored, patients = await self._reclassify(request.user_id, pms_type, tags, catalog)
                await self._uow.commit()
            mappings_count += stored
            recomputed += patients

        counts = await self._cases.count(request.user_id)
        logger.info(
            f"Reclassified user {request.user_id}: {counts.wc_patients} WC / {counts.epc_patients} EPC, "
            f"{recomputed} patients recomputed"
        )
        return ReclassifyResult(new_counts=counts, mappings_count=mappings_count, patients_recomputed=recomputed)

    async def _reclassify(
        self, user_id: str, pms_type: PMSType, tags: FundingTags, catalog: list[RawAppointmentType]
    ) -> tuple[int, int]:
        mappings = AppointmentTypeClassifier(tags).classify(catalog)
        stored = await self._types.replace_mappings(user_id, pms_type, mappings)
        mapping = index_mappings(mappings)

        grouped = await self._funding.appointments_by_patient(user_id, pms_type)
        affected = [
            patient_id
            for patient_id, appointments in grouped.items()
            if any(a.appointment_type_id in mapping for a in appointments)
        ]

        now = datetime.now(UTC)
        if affected:
            funding = self._funding.calculate(grouped, affected, mapping, now)
            result = await self._funding.update(user_id, pms_type, funding)
            for failure in result.failures:
                logger.warning(f"Reclassification of {pms_type.value}: {failure.message}")

        cases = await self._cases.repopulate(user_id, pms_type, now)
        logger.info(
            f"Reclassified {pms_type.value}: {stored} of {len(catalog)} types mapped, "
            f"{len(affected)} patients recomputed, {cases} cases"
        )
        return stored, len(affected)
