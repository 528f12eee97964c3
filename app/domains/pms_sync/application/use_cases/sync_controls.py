# ============================================================================
# SCOPE: APPLICATION LAYER (PMS Sync)
# Description: Pause/resume, status and dashboard count queries.
# ============================================================================
"""Sync Control Use Cases."""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from ...domain.entities import CaseCounts, SyncControl
from ...domain.value_objects import PMSType
from ..dto import SyncStatusResult

if TYPE_CHECKING:
    from ..ports import ICaseRepository, ISyncControlRepository, ISyncLogRepository, IUnitOfWork

logger = logging.getLogger(__name__)


class _ControlUseCase:
    def __init__(
        self,
        sync_control_repository: "ISyncControlRepository",
        unit_of_work: "IUnitOfWork",
        default_sync_frequency_hours: int = 6,
    ) -> None:
        self._controls = sync_control_repository
        self._uow = unit_of_work
        self._default_frequency = default_sync_frequency_hours

    async def _load(self, user_id: str, pms_type: PMSType) -> SyncControl:
        control = await self._controls.get(user_id, pms_type)
        if control is None:
            control = SyncControl(user_id=user_id, pms_type=pms_type, sync_frequency_hours=self._default_frequency)
        return control


class PauseSyncUseCase(_ControlUseCase):
    """Disable sync for a connection. Later runs fail with SyncDisabledError."""

    async def execute(self, user_id: str, pms_type: PMSType) -> SyncControl:
        control = await self._load(user_id, pms_type)
        control.pause()
        control = await self._controls.save(control)
        await self._uow.commit()
        logger.info(f"{pms_type.value} sync paused for user {user_id}")
        return control


class ResumeSyncUseCase(_ControlUseCase):
    """Enable sync for a connection and make it due immediately."""

    async def execute(self, user_id: str, pms_type: PMSType) -> SyncControl:
        control = await self._load(user_id, pms_type)
        control.resume(datetime.now(UTC))
        control = await self._controls.save(control)
        await self._uow.commit()
        logger.info(f"{pms_type.value} sync resumed for user {user_id}")
        return control


class GetSyncStatusUseCase:
    """Latest sync log and control state of a connection."""

    def __init__(
        self,
        sync_log_repository: "ISyncLogRepository",
        sync_control_repository: "ISyncControlRepository",
    ) -> None:
        self._logs = sync_log_repository
        self._controls = sync_control_repository

    async def execute(self, user_id: str, pms_type: PMSType) -> SyncStatusResult:
        return SyncStatusResult(
            pms_type=pms_type,
            latest_run=await self._logs.get_latest(user_id, pms_type),
            control=await self._controls.get(user_id, pms_type),
        )


class GetCaseCountsUseCase:
    """Dashboard counts, read from the stored case rows."""

    def __init__(self, case_repository: "ICaseRepository") -> None:
        self._cases = case_repository

    async def execute(self, user_id: str, pms_type: PMSType | None = None) -> CaseCounts:
        return await self._cases.count(user_id, pms_type)
