# ============================================================================
# SCOPE: GLOBAL
# Description: FastAPI dependencies - container, session identity, request
#              cancellation and use case factories.
# ============================================================================
import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.container import DependencyContainer, get_container
from app.database.async_db import get_async_db
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

logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 1.0


def get_di_container() -> DependencyContainer:
    """
    Get Dependency Injection Container.

    Returns:
        DependencyContainer instance
    """
    return get_container()


async def get_current_user_id(x_user_id: str | None = Header(default=None, alias="X-User-ID")) -> str:
    """
    Clinic user id supplied by the hosting gateway.

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-ID header",
        )
    return x_user_id.strip()


async def get_cancel_token(request: Request) -> AsyncIterator[CancellationToken]:
    """
    Cancellation token tied to the HTTP connection.

    A background watcher cancels the token once the client disconnects, so a
    long sync stops calling the PMS for nobody.
    """
    token = CancellationToken()

    async def watch() -> None:
        while not token.cancelled:
            if await request.is_disconnected():
                token.cancel("client disconnected")
                return
            await asyncio.sleep(DISCONNECT_POLL_SECONDS)

    watcher = asyncio.create_task(watch())
    try:
        yield token
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher


# ============================================================
# USE CASES
# ============================================================


def get_connect_pms_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> ConnectPMSUseCase:
    return container.create_connect_pms_use_case(db)


def get_sync_orchestrator(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> SyncOrchestrator:
    return container.create_sync_orchestrator(db)


def get_sync_stored_credential_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> SyncStoredCredentialUseCase:
    return container.create_sync_stored_credential_use_case(db)


def get_reclassify_tags_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> ReclassifyTagsUseCase:
    return container.create_reclassify_tags_use_case(db)


def get_pause_sync_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> PauseSyncUseCase:
    return container.create_pause_sync_use_case(db)


def get_resume_sync_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> ResumeSyncUseCase:
    return container.create_resume_sync_use_case(db)


def get_sync_status_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> GetSyncStatusUseCase:
    return container.create_get_sync_status_use_case(db)


def get_case_counts_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> GetCaseCountsUseCase:
    return container.create_get_case_counts_use_case(db)
