"""Unit tests for the single-flight sync locks."""

import pytest

from app.domains.pms_sync.domain.exceptions import SyncInProgressError
from app.domains.pms_sync.domain.value_objects import PMSType
from app.domains.pms_sync.infrastructure.locking import CompositeSyncLock, InProcessSyncLock, advisory_key


class TestInProcessSyncLock:
    """Tests for the per-worker lock registry."""

    @pytest.mark.asyncio
    async def test_second_hold_fails_fast(self) -> None:
        """Should reject a concurrent run for the same connection."""
        lock = InProcessSyncLock()
        async with lock.hold("user-1", PMSType.CLINIKO):
            assert lock.is_held("user-1", PMSType.CLINIKO)
            with pytest.raises(SyncInProgressError):
                async with lock.hold("user-1", PMSType.CLINIKO):
                    pass
        assert not lock.is_held("user-1", PMSType.CLINIKO)

    @pytest.mark.asyncio
    async def test_independent_connections(self) -> None:
        """Should allow other users and other PMS types to run."""
        lock = InProcessSyncLock()
        async with lock.hold("user-1", PMSType.CLINIKO):
            async with lock.hold("user-1", PMSType.NOOKAL):
                async with lock.hold("user-2", PMSType.CLINIKO):
                    pass

    @pytest.mark.asyncio
    async def test_released_on_error(self) -> None:
        lock = InProcessSyncLock()
        with pytest.raises(RuntimeError):
            async with lock.hold("user-1", PMSType.HALAXY):
                raise RuntimeError("boom")
        assert not lock.is_held("user-1", PMSType.HALAXY)

    @pytest.mark.asyncio
    async def test_registry_drops_released_entries(self) -> None:
        """Should not keep an entry per connection once its sync has finished."""
        lock = InProcessSyncLock()
        for index in range(50):
            async with lock.hold(f"user-{index}", PMSType.CLINIKO):
                assert len(lock._locks) == 1
        with pytest.raises(RuntimeError):
            async with lock.hold("user-1", PMSType.NOOKAL):
                raise RuntimeError("boom")

        assert lock._locks == {}

    @pytest.mark.asyncio
    async def test_rejected_hold_keeps_running_entry(self) -> None:
        lock = InProcessSyncLock()
        async with lock.hold("user-1", PMSType.CLINIKO):
            with pytest.raises(SyncInProgressError):
                async with lock.hold("user-1", PMSType.CLINIKO):
                    pass
            assert lock.is_held("user-1", PMSType.CLINIKO)
        assert lock._locks == {}


class TestCompositeSyncLock:
    @pytest.mark.asyncio
    async def test_releases_first_lock_when_second_is_busy(self) -> None:
        """Should not leak the first lock when a later one is held elsewhere."""
        first, second = InProcessSyncLock(), InProcessSyncLock()
        composite = CompositeSyncLock(first, second)

        async with second.hold("user-1", PMSType.CLINIKO):
            with pytest.raises(SyncInProgressError):
                async with composite.hold("user-1", PMSType.CLINIKO):
                    pass

        assert not first.is_held("user-1", PMSType.CLINIKO)


class TestAdvisoryKey:
    def test_stable_and_distinct(self) -> None:
        """Should give a stable signed 64-bit key per connection."""
        key = advisory_key("user-1", PMSType.CLINIKO)
        assert key == advisory_key("user-1", PMSType.CLINIKO)
        assert key != advisory_key("user-1", PMSType.NOOKAL)
        assert -(2**63) <= key < 2**63
