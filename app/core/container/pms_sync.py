# ============================================================================
# SCOPE: DOMAIN
# Description: Container for PMS Sync domain dependencies.
#              Provides factories for repositories and use cases.
# ============================================================================
"""
PMS Sync Domain Container.

Repositories and use cases are created per request around the request's
AsyncSession; the client factory, vault and sync lock come from the base
container.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.domains.pms_sync.application.services import FundingRefreshService
from app.domains.pms_sync.application.use_cases import (
    ConnectPMSUseCase,
    GetCaseCountsUseCase,
    GetSyncStatusUseCase,
    PauseSyncUseCase,
    ReclassifyTagsUseCase,
    ResumeSyncUseCase,
    SyncOrchestrator,
    SyncStoredCredentialUseCase,
)
from app.domains.pms_sync.infrastructure.persistence.sqlalchemy import SQLAlchemyUnitOfWork
from app.domains.pms_sync.infrastructure.repositories import (
    SQLAlchemyAppointmentRepository,
    SQLAlchemyAppointmentTypeRepository,
    SQLAlchemyCaseRepository,
    SQLAlchemyCredentialRepository,
    SQLAlchemyFundingTagRepository,
    SQLAlchemyPatientRepository,
    SQLAlchemyPractitionerRepository,
    SQLAlchemySyncControlRepository,
    SQLAlchemySyncLogRepository,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.core.container.base import BaseContainer

logger = logging.getLogger(__name__)


class PMSSyncContainer:
    """Container for PMS Sync domain dependencies.

    Single Responsibility: Wire PMS sync dependencies.
    """

    def __init__(self, base: "BaseContainer"):
        """Initialize container.

        Args:
            base: Base container with shared singletons.
        """
        self._base = base
        logger.debug("PMSSyncContainer initialized")

    @property
    def _batch_size(self) -> int:
        return self._base.settings.SYNC_BATCH_SIZE

    # ============================================================
    # REPOSITORIES
    # ============================================================

    def create_patient_repository(self, db: "AsyncSession") -> SQLAlchemyPatientRepository:
        return SQLAlchemyPatientRepository(db, batch_size=self._batch_size)

    def create_appointment_repository(self, db: "AsyncSession") -> SQLAlchemyAppointmentRepository:
        return SQLAlchemyAppointmentRepository(db, batch_size=self._batch_size)

    def create_funding_service(self, db: "AsyncSession") -> FundingRefreshService:
        return FundingRefreshService(
            self.create_patient_repository(db),
            self.create_appointment_repository(db),
            self._base.get_quota_calculator(),
        )

    # ============================================================
    # USE CASES
    # ============================================================

    def create_connect_pms_use_case(self, db: "AsyncSession") -> ConnectPMSUseCase:
        return ConnectPMSUseCase(
            client_factory=self._base.get_client_factory(),
            credential_repository=SQLAlchemyCredentialRepository(db),
            sync_control_repository=SQLAlchemySyncControlRepository(db),
            vault=self._base.get_vault(),
            unit_of_work=SQLAlchemyUnitOfWork(db),
            default_sync_frequency_hours=self._base.settings.DEFAULT_SYNC_FREQUENCY_HOURS,
        )

    def create_sync_orchestrator(self, db: "AsyncSession") -> SyncOrchestrator:
        patients = self.create_patient_repository(db)
        appointments = self.create_appointment_repository(db)
        return SyncOrchestrator(
            client_factory=self._base.get_client_factory(),
            appointment_type_repository=SQLAlchemyAppointmentTypeRepository(db),
            funding_tag_repository=SQLAlchemyFundingTagRepository(db),
            practitioner_repository=SQLAlchemyPractitionerRepository(db, batch_size=self._batch_size),
            patient_repository=patients,
            appointment_repository=appointments,
            sync_log_repository=SQLAlchemySyncLogRepository(db),
            sync_control_repository=SQLAlchemySyncControlRepository(db),
            case_repository=SQLAlchemyCaseRepository(db),
            sync_lock=self._base.get_sync_lock(),
            unit_of_work=SQLAlchemyUnitOfWork(db),
            funding_service=FundingRefreshService(patients, appointments, self._base.get_quota_calculator()),
            default_tags=self._base.get_default_tags(),
            default_sync_frequency_hours=self._base.settings.DEFAULT_SYNC_FREQUENCY_HOURS,
        )

    def create_sync_stored_credential_use_case(self, db: "AsyncSession") -> SyncStoredCredentialUseCase:
        return SyncStoredCredentialUseCase(
            credential_repository=SQLAlchemyCredentialRepository(db),
            vault=self._base.get_vault(),
            orchestrator=self.create_sync_orchestrator(db),
        )

    def create_reclassify_tags_use_case(self, db: "AsyncSession") -> ReclassifyTagsUseCase:
        return ReclassifyTagsUseCase(
            funding_tag_repository=SQLAlchemyFundingTagRepository(db),
            appointment_type_repository=SQLAlchemyAppointmentTypeRepository(db),
            patient_repository=self.create_patient_repository(db),
            appointment_repository=self.create_appointment_repository(db),
            case_repository=SQLAlchemyCaseRepository(db),
            sync_lock=self._base.get_sync_lock(),
            unit_of_work=SQLAlchemyUnitOfWork(db),
            funding_service=self.create_funding_service(db),
            default_tags=self._base.get_default_tags(),
        )

    def create_pause_sync_use_case(self, db: "AsyncSession") -> PauseSyncUseCase:
        return PauseSyncUseCase(
            SQLAlchemySyncControlRepository(db),
            SQLAlchemyUnitOfWork(db),
            self._base.settings.DEFAULT_SYNC_FREQUENCY_HOURS,
        )

    def create_resume_sync_use_case(self, db: "AsyncSession") -> ResumeSyncUseCase:
        return ResumeSyncUseCase(
            SQLAlchemySyncControlRepository(db),
            SQLAlchemyUnitOfWork(db),
            self._base.settings.DEFAULT_SYNC_FREQUENCY_HOURS,
        )

    def create_get_sync_status_use_case(self, db: "AsyncSession") -> GetSyncStatusUseCase:
        return GetSyncStatusUseCase(SQLAlchemySyncLogRepository(db), SQLAlchemySyncControlRepository(db))

    def create_get_case_counts_use_case(self, db: "AsyncSession") -> GetCaseCountsUseCase:
        return GetCaseCountsUseCase(SQLAlchemyCaseRepository(db))
