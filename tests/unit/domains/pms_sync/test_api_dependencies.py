"""
Tests for the request-scoped API dependencies and the DI container wiring.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException

from app.api.dependencies import get_cancel_token, get_current_user_id
from app.config.settings import Settings
from app.core.container import DependencyContainer
from app.domains.pms_sync.application.use_cases import (
    ReclassifyTagsUseCase,
    SyncOrchestrator,
    SyncStoredCredentialUseCase,
)
from app.domains.pms_sync.domain.value_objects import FundingTags, PMSType
from app.domains.pms_sync.infrastructure.locking import InProcessSyncLock
from app.domains.pms_sync.infrastructure.security import AesCtrCredentialVault


@pytest.mark.unit
class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_strips_header(self) -> None:
        assert await get_current_user_id(" user-1 ") == "user-1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "", "   "])
    async def test_missing_header(self, header) -> None:
        """Should answer 401 when the gateway did not identify the user."""
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user_id(header)
        assert exc_info.value.status_code == 401


@pytest.mark.unit
class TestCancelToken:
    @pytest.mark.asyncio
    async def test_disconnect_cancels_token(self) -> None:
        """Should cancel the run once the client goes away."""
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=True)

        dependency = get_cancel_token(request)
        token = await dependency.__anext__()
        for _ in range(5):
            await asyncio.sleep(0)

        assert token.cancelled is True
        assert token.reason == "client disconnected"
        await dependency.aclose()

    @pytest.mark.asyncio
    async def test_connected_client_keeps_token(self) -> None:
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=False)

        dependency = get_cancel_token(request)
        token = await dependency.__anext__()
        await asyncio.sleep(0)
        await dependency.aclose()

        assert token.cancelled is False
        request.is_disconnected.assert_awaited()


@pytest.fixture
def container() -> DependencyContainer:
    settings = Settings(
        SYNC_ADVISORY_LOCKS=False,
        PMS_ENCRYPTION_SECRET="container-secret",
        DEFAULT_WC_TAGS="WC, WorkCover",
        DEFAULT_EPC_TAGS=["EPC"],
    )
    return DependencyContainer(settings)


@pytest.mark.unit
class TestDependencyContainer:
    """Tests for singleton and per-request wiring."""

    def test_shared_singletons(self, container) -> None:
        """Should hand out one lock, vault and client factory per process."""
        assert isinstance(container.get_sync_lock(), InProcessSyncLock)
        assert container.get_sync_lock() is container.get_sync_lock()
        assert isinstance(container.get_vault(), AesCtrCredentialVault)
        assert set(container.get_client_factory().supported_types()) == set(PMSType)

    def test_default_tags_from_settings(self, container) -> None:
        assert container._base.get_default_tags() == FundingTags(wc_tags=("WC", "WorkCover"), epc_tags=("EPC",))

    def test_use_cases_per_session(self, container) -> None:
        """Should build use cases around the request session."""
        session = MagicMock()

        orchestrator = container.create_sync_orchestrator(session)
        stored = container.create_sync_stored_credential_use_case(session)
        reclassify = container.create_reclassify_tags_use_case(session)

        assert isinstance(orchestrator, SyncOrchestrator)
        assert isinstance(stored, SyncStoredCredentialUseCase)
        assert isinstance(reclassify, ReclassifyTagsUseCase)
        assert orchestrator is not container.create_sync_orchestrator(session)
