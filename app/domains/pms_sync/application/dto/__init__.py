"""PMS Sync DTOs."""

from .sync_dtos import (
    ConnectPMSRequest,
    ConnectPMSResult,
    ReclassifyResult,
    RunSyncRequest,
    SyncStatusResult,
    SyncStoredCredentialRequest,
    SyncSummary,
    UpdateTagsRequest,
)

__all__ = [
    "ConnectPMSRequest",
    "ConnectPMSResult",
    "ReclassifyResult",
    "RunSyncRequest",
    "SyncStatusResult",
    "SyncStoredCredentialRequest",
    "SyncSummary",
    "UpdateTagsRequest",
]
