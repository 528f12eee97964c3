# ============================================================================
# SCOPE: GLOBAL
# Description: Base container with process-wide singletons (PMS client
#              factory, credential vault, sync lock).
# ============================================================================
"""
Base Container - Shared Singletons.

Single Responsibility: Create and cache resources shared by every request.
"""

import logging

from app.config.settings import Settings, get_settings
from app.domains.pms_sync.application.ports import ICredentialVault, IPMSClientFactory, ISyncLock
from app.domains.pms_sync.domain.services import FundingQuotaCalculator
from app.domains.pms_sync.domain.value_objects import FundingTags, QuotaPolicy

logger = logging.getLogger(__name__)


class BaseContainer:
    """
    Base container for shared singletons.

    The sync lock in particular must be shared: a per-request lock would not
    keep two requests for the same connection apart.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize base container.

        Args:
            settings: Optional settings (defaults to get_settings())
        """
        self.settings = settings or get_settings()

        # Singletons
        self._client_factory: IPMSClientFactory | None = None
        self._vault: ICredentialVault | None = None
        self._sync_lock: ISyncLock | None = None

        logger.info("BaseContainer initialized")

    def get_client_factory(self) -> IPMSClientFactory:
        """Get PMS client factory (singleton)."""
        if self._client_factory is None:
            from app.domains.pms_sync.infrastructure.external import PMSClientFactory

            self._client_factory = PMSClientFactory.from_settings(self.settings)
            logger.info(f"PMS client factory ready: {[t.value for t in self._client_factory.supported_types()]}")
        return self._client_factory

    def get_vault(self) -> ICredentialVault:
        """Get credential vault (singleton)."""
        if self._vault is None:
            from app.domains.pms_sync.infrastructure.security import AesCtrCredentialVault

            self._vault = AesCtrCredentialVault(self.settings.PMS_ENCRYPTION_SECRET)
        return self._vault

    def get_sync_lock(self) -> ISyncLock:
        """
        Get the single-flight sync lock (singleton).

        The in-process lock is always held; the PostgreSQL advisory lock is
        added when SYNC_ADVISORY_LOCKS is enabled.
        """
        if self._sync_lock is None:
            from app.domains.pms_sync.infrastructure.locking import (
                CompositeSyncLock,
                InProcessSyncLock,
                PostgresAdvisorySyncLock,
            )

            if self.settings.SYNC_ADVISORY_LOCKS:
                from app.database.async_db import get_async_engine

                self._sync_lock = CompositeSyncLock(InProcessSyncLock(), PostgresAdvisorySyncLock(get_async_engine()))
                logger.info("Sync lock: in-process + PostgreSQL advisory")
            else:
                self._sync_lock = InProcessSyncLock()
                logger.info("Sync lock: in-process only")
        return self._sync_lock

    def get_default_tags(self) -> FundingTags:
        return FundingTags.create(self.settings.DEFAULT_WC_TAGS, self.settings.DEFAULT_EPC_TAGS)

    def get_quota_calculator(self) -> FundingQuotaCalculator:
        return FundingQuotaCalculator(
            QuotaPolicy(wc_quota=self.settings.WC_DEFAULT_QUOTA, epc_quota=self.settings.EPC_DEFAULT_QUOTA)
        )
