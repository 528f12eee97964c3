"""
PMS sync endpoints: connect, sync, sync controls, funding tags and counts.
"""

import logging

from fastapi import APIRouter, Depends

from app.api.dependencies import (
    get_cancel_token,
    get_case_counts_use_case,
    get_connect_pms_use_case,
    get_current_user_id,
    get_pause_sync_use_case,
    get_reclassify_tags_use_case,
    get_resume_sync_use_case,
    get_sync_orchestrator,
    get_sync_status_use_case,
    get_sync_stored_credential_use_case,
)
from app.api.schemas.pms_sync import (
    ConnectResponse,
    CountsResponse,
    FundingTagsRequest,
    PMSCredentialsRequest,
    SyncControlResponse,
    SyncResponse,
    SyncStatusResponse,
    TagsUpdateResponse,
)
from app.domains.pms_sync.application.dto import (
    ConnectPMSRequest,
    RunSyncRequest,
    SyncStoredCredentialRequest,
    UpdateTagsRequest,
)
from app.domains.pms_sync.application.run_context import CancellationToken
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
from app.domains.pms_sync.domain.value_objects import PMSType, SyncType

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/connect", response_model=ConnectResponse)
async def connect_pms(
    body: PMSCredentialsRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: ConnectPMSUseCase = Depends(get_connect_pms_use_case),  # noqa: B008
):
    """Verify a PMS API key and store it encrypted."""
    result = await use_case.execute(
        ConnectPMSRequest(user_id=user_id, pms_type=body.pms_type, api_key=body.api_key, clinic_id=body.clinic_id)
    )
    return ConnectResponse(connected=result.connected, pms_type=result.pms_type)


@router.post("/sync", response_model=SyncResponse, response_model_exclude_none=True)
async def sync_with_key(
    body: PMSCredentialsRequest,
    user_id: str = Depends(get_current_user_id),
    connect: ConnectPMSUseCase = Depends(get_connect_pms_use_case),  # noqa: B008
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),  # noqa: B008
    cancel_token: CancellationToken = Depends(get_cancel_token),  # noqa: B008
):
    """
    Connect the PMS with the given key and run a full sync.

    The first run of a connection is recorded as ``initial``, later ones as
    ``manual``.
    """
    await connect.execute(
        ConnectPMSRequest(user_id=user_id, pms_type=body.pms_type, api_key=body.api_key, clinic_id=body.clinic_id)
    )
    summary = await orchestrator.execute(
        RunSyncRequest(user_id=user_id, pms_type=body.pms_type, api_key=body.api_key, sync_type=SyncType.MANUAL),
        cancel_token,
    )
    return SyncResponse.from_summary(summary)


@router.post("/sync/{pms_type}", response_model=SyncResponse, response_model_exclude_none=True)
async def sync_stored_credential(
    pms_type: PMSType,
    user_id: str = Depends(get_current_user_id),
    use_case: SyncStoredCredentialUseCase = Depends(get_sync_stored_credential_use_case),  # noqa: B008
    cancel_token: CancellationToken = Depends(get_cancel_token),  # noqa: B008
):
    """Incremental sync using the stored credential."""
    summary = await use_case.execute(
        SyncStoredCredentialRequest(user_id=user_id, pms_type=pms_type, sync_type=SyncType.INCREMENTAL),
        cancel_token,
    )
    return SyncResponse.from_summary(summary)


@router.get("/sync/{pms_type}/status", response_model=SyncStatusResponse)
async def get_sync_status(
    pms_type: PMSType,
    user_id: str = Depends(get_current_user_id),
    use_case: GetSyncStatusUseCase = Depends(get_sync_status_use_case),  # noqa: B008
):
    """Latest sync log and the pause/resume state of a connection."""
    return SyncStatusResponse.from_result(await use_case.execute(user_id, pms_type))


@router.post("/sync/{pms_type}/pause", response_model=SyncControlResponse)
async def pause_sync(
    pms_type: PMSType,
    user_id: str = Depends(get_current_user_id),
    use_case: PauseSyncUseCase = Depends(get_pause_sync_use_case),  # noqa: B008
):
    return SyncControlResponse.from_control(await use_case.execute(user_id, pms_type))


@router.post("/sync/{pms_type}/resume", response_model=SyncControlResponse)
async def resume_sync(
    pms_type: PMSType,
    user_id: str = Depends(get_current_user_id),
    use_case: ResumeSyncUseCase = Depends(get_resume_sync_use_case),  # noqa: B008
):
    return SyncControlResponse.from_control(await use_case.execute(user_id, pms_type))


@router.put("/tags", response_model=TagsUpdateResponse)
async def update_funding_tags(
    body: FundingTagsRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: ReclassifyTagsUseCase = Depends(get_reclassify_tags_use_case),  # noqa: B008
):
    """Store new funding tags and reclassify every connected PMS."""
    result = await use_case.execute(UpdateTagsRequest(user_id=user_id, wc_tags=body.wc_tags, epc_tags=body.epc_tags))
    return TagsUpdateResponse(new_counts=CountsResponse.from_counts(result.new_counts))


@router.get("/counts", response_model=CountsResponse)
async def get_counts(
    pms_type: PMSType | None = None,
    user_id: str = Depends(get_current_user_id),
    use_case: GetCaseCountsUseCase = Depends(get_case_counts_use_case),  # noqa: B008
):
    """Dashboard counts, optionally for one PMS."""
    return CountsResponse.from_counts(await use_case.execute(user_id, pms_type))
