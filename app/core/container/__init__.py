# ============================================================================
# SCOPE: GLOBAL
# Description: Main dependency injection container (singleton).
#              Composes the domain sub-containers.
# ============================================================================
"""
Dependency Injection Container.

Centralized container for creating and managing all application dependencies.
Implements Dependency Inversion Principle by wiring concrete implementations to interfaces.

This module is the facade that composes all domain-specific containers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.config.settings import Settings

from .base import BaseContainer
from .pms_sync import PMSSyncContainer

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class DependencyContainer:
    """
    Dependency Injection Container (Facade).

    Single Responsibility: Compose and delegate to domain-specific containers.
    Singleton Pattern: Ensures single instance of shared resources (client factory, sync lock).
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize container with all domain sub-containers.

        Args:
            settings: Optional settings (overrides get_settings())
        """
        self._base = BaseContainer(settings)
        self._pms_sync = PMSSyncContainer(self._base)

        logger.info("DependencyContainer initialized with all domain containers")

    @property
    def settings(self) -> Settings:
        return self._base.settings

    # ============================================================
    # SINGLETONS (delegated to BaseContainer)
    # ============================================================

    def get_client_factory(self):
        return self._base.get_client_factory()

    def get_vault(self):
        return self._base.get_vault()

    def get_sync_lock(self):
        return self._base.get_sync_lock()

    # ============================================================
    # PMS SYNC (delegated to PMSSyncContainer)
    # ============================================================

    def create_connect_pms_use_case(self, db: "AsyncSession"):
        return self._pms_sync.create_connect_pms_use_case(db)

    def create_sync_orchestrator(self, db: "AsyncSession"):
        return self._pms_sync.create_sync_orchestrator(db)

    def create_sync_stored_credential_use_case(self, db: "AsyncSession"):
        return self._pms_sync.create_sync_stored_credential_use_case(db)

    def create_reclassify_tags_use_case(self, db: "AsyncSession"):
        return self._pms_sync.create_reclassify_tags_use_case(db)

    def create_pause_sync_use_case(self, db: "AsyncSession"):
        return self._pms_sync.create_pause_sync_use_case(db)

    def create_resume_sync_use_case(self, db: "AsyncSession"):
        return self._pms_sync.create_resume_sync_use_case(db)

    def create_get_sync_status_use_case(self, db: "AsyncSession"):
        return self._pms_sync.create_get_sync_status_use_case(db)

    def create_get_case_counts_use_case(self, db: "AsyncSession"):
        return self._pms_sync.create_get_case_counts_use_case(db)


# ============================================================
# GLOBAL CONTAINER INSTANCE
# ============================================================

_container: DependencyContainer | None = None


def get_container(settings: Settings | None = None) -> DependencyContainer:
    """
    Get global container instance (singleton).

    Args:
        settings: Optional settings (only used on first call)

    Returns:
        DependencyContainer instance
    """
    global _container

    if _container is None:
        logger.info("Initializing global DependencyContainer")
        _container = DependencyContainer(settings)
    elif settings is not None:
        logger.warning(
            "Container already initialized, ignoring new settings. "
            "Call reset_container() first to change settings."
        )

    return _container


def reset_container() -> None:
    """
    Reset global container instance.

    Useful for testing or reconfiguration.
    """
    global _container
    logger.info("Resetting global DependencyContainer")
    _container = None


__all__ = [
    "DependencyContainer",
    "get_container",
    "reset_container",
    "BaseContainer",
    "PMSSyncContainer",
]
