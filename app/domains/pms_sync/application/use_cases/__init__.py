# ============================================================================
# SCOPE: APPLICATION LAYER (PMS Sync)
# Description: Use Cases exports.
# ============================================================================
"""Application Use Cases for PMS Sync domain."""

from .connect_pms import ConnectPMSUseCase
from .reclassify_tags import ReclassifyTagsUseCase
from .run_sync import SyncOrchestrator, SyncStoredCredentialUseCase
from .sync_controls import (
    GetCaseCountsUseCase,
    GetSyncStatusUseCase,
    PauseSyncUseCase,
    ResumeSyncUseCase,
)

__all__ = [
    "ConnectPMSUseCase",
    "ReclassifyTagsUseCase",
    "SyncOrchestrator",
    "SyncStoredCredentialUseCase",
    "GetCaseCountsUseCase",
    "GetSyncStatusUseCase",
    "PauseSyncUseCase",
    "ResumeSyncUseCase",
]
