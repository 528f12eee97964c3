"""
Sync Log and Sync Control Repository Implementations
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ...application.ports import ISyncControlRepository, ISyncLogRepository
from ...domain.entities import SyncControl, SyncRun
from ...domain.value_objects import PMSType, SyncState, SyncStatus, SyncType
from ..persistence.sqlalchemy.models import SyncControlModel, SyncLogModel

logger = logging.getLogger(__name__)

_STATE_FOR_STATUS = {
    SyncStatus.RUNNING: SyncState.PERSISTING,
    SyncStatus.COMPLETED: SyncState.COMPLETED,
    SyncStatus.FAILED: SyncState.FAILED,
}


class SQLAlchemySyncLogRepository(ISyncLogRepository):
    """One sync_logs row per run, inserted at start and updated on finish."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _values(run: SyncRun) -> dict:
        return {
            "status": run.status.value,
            "patients_processed": run.patients_processed,
            "patients_added": run.patients_added,
            "patients_synced": run.patients_synced,
            "appointments_synced": run.appointments_synced,
            "appointment_types_count": run.appointment_types_count,
            "practitioners_synced": run.practitioners_synced,
            "errors_count": run.errors_count,
            "completed_at": run.completed_at,
            # Successful runs become the watermark for the next incremental sync
            "last_modified_sync": run.started_at if run.state == SyncState.COMPLETED else None,
            "error_details": run.error_details,
        }

    @staticmethod
    def _to_entity(model: SyncLogModel) -> SyncRun:
        details = model.error_details or {}
        return SyncRun(
            id=model.id,
            user_id=model.user_id,
            pms_type=PMSType(model.pms_type),
            sync_type=SyncType(model.sync_type),
            state=_STATE_FOR_STATUS[SyncStatus(model.status)],
            started_at=model.started_at,
            completed_at=model.completed_at,
            appointment_types_count=model.appointment_types_count,
            practitioners_synced=model.practitioners_synced,
            patients_processed=model.patients_processed,
            patients_added=model.patients_added,
            patients_synced=model.patients_synced,
            appointments_synced=model.appointments_synced,
            issues=list(details.get("issues") or []),
            warnings=list(details.get("warnings") or []),
            error=details.get("error"),
        )

    async def add(self, run: SyncRun) -> SyncRun:
        model = SyncLogModel(
            user_id=run.user_id,
            pms_type=run.pms_type.value,
            sync_type=run.sync_type.value,
            started_at=run.started_at,
            **self._values(run),
        )
        self.session.add(model)
        await self.session.flush()
        run.id = model.id
        return run

    async def update(self, run: SyncRun) -> None:
        if run.id is None:
            raise ValueError("Cannot update a sync log that was never added")
        await self.session.execute(update(SyncLogModel).where(SyncLogModel.id == run.id).values(**self._values(run)))

    async def get_latest(self, user_id: str, pms_type: PMSType) -> SyncRun | None:
        result = await self.session.execute(
            select(SyncLogModel)
            .where(SyncLogModel.user_id == user_id, SyncLogModel.pms_type == pms_type.value)
            .order_by(SyncLogModel.started_at.desc(), SyncLogModel.id.desc())
            .limit(1)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_last_successful_sync(self, user_id: str, pms_type: PMSType) -> datetime | None:
        result = await self.session.execute(
            select(SyncLogModel.last_modified_sync)
            .where(
                SyncLogModel.user_id == user_id,
                SyncLogModel.pms_type == pms_type.value,
                SyncLogModel.status == SyncStatus.COMPLETED.value,
                SyncLogModel.last_modified_sync.is_not(None),
            )
            .order_by(SyncLogModel.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


class SQLAlchemySyncControlRepository(ISyncControlRepository):
    """SQLAlchemy implementation of sync control repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _to_entity(model: SyncControlModel) -> SyncControl:
        return SyncControl(
            id=model.id,
            user_id=model.user_id,
            pms_type=PMSType(model.pms_type),
            is_enabled=model.is_enabled,
            sync_frequency_hours=model.sync_frequency_hours,
            last_sync_at=model.last_sync_at,
            next_sync_at=model.next_sync_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    async def get(self, user_id: str, pms_type: PMSType) -> SyncControl | None:
        result = await self.session.execute(
            select(SyncControlModel).where(
                SyncControlModel.user_id == user_id,
                SyncControlModel.pms_type == pms_type.value,
            )
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def save(self, control: SyncControl) -> SyncControl:
        values = {
            "is_enabled": control.is_enabled,
            "sync_frequency_hours": control.sync_frequency_hours,
            "last_sync_at": control.last_sync_at,
            "next_sync_at": control.next_sync_at,
        }
        stmt = insert(SyncControlModel).values(user_id=control.user_id, pms_type=control.pms_type.value, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "pms_type"],
            set_={**values, "updated_at": datetime.now(UTC)},
        ).returning(SyncControlModel.id)
        result = await self.session.execute(stmt)
        control.id = result.scalar_one()
        return control
