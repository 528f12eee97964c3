# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: Single-flight guard per (user, pms_type).
# ============================================================================
"""Sync Locks.

A second sync for the same connection fails fast with SyncInProgressError
instead of waiting. The in-process registry covers one worker; the
PostgreSQL advisory lock covers every worker sharing the database.
"""

import asyncio
import hashlib
import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from ..domain.exceptions import SyncInProgressError
from ..domain.value_objects import PMSType

logger = logging.getLogger(__name__)


def advisory_key(user_id: str, pms_type: PMSType) -> int:
    """Stable signed 64-bit key for pg_try_advisory_lock."""
    digest = hashlib.sha256(f"pms-sync:{user_id}:{PMSType(pms_type).value}".encode()).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


class InProcessSyncLock:
    """asyncio lock registry keyed on (user_id, pms_type)."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    def is_held(self, user_id: str, pms_type: PMSType) -> bool:
        lock = self._locks.get((user_id, PMSType(pms_type).value))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, user_id: str, pms_type: PMSType) -> AsyncIterator[None]:
        key = (user_id, PMSType(pms_type).value)
        lock = self._locks.setdefault(key, asyncio.Lock())
        if lock.locked():
            logger.warning(f"Sync already running for user {user_id} on {key[1]}")
            raise SyncInProgressError(user_id, pms_type)
        try:
            async with lock:
                yield
        finally:
            # Released entries are dropped so the registry only holds running syncs
            if not lock.locked() and self._locks.get(key) is lock:
                del self._locks[key]


class PostgresAdvisorySyncLock:
    """Session-level advisory lock held on a dedicated connection for the run."""

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    @asynccontextmanager
    async def hold(self, user_id: str, pms_type: PMSType) -> AsyncIterator[None]:
        key = advisory_key(user_id, pms_type)
        async with self._engine.connect() as conn:
            acquired = (await conn.execute(text("SELECT pg_try_advisory_lock(:key)"), {"key": key})).scalar()
            if not acquired:
                logger.warning(f"Advisory lock {key} is held by another worker")
                raise SyncInProgressError(user_id, pms_type)
            try:
                yield
            finally:
                await conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": key})


class CompositeSyncLock:
    """Holds every wrapped lock, in order."""

    def __init__(self, *locks) -> None:
        self._locks = locks

    @asynccontextmanager
    async def hold(self, user_id: str, pms_type: PMSType) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for lock in self._locks:
                await stack.enter_async_context(lock.hold(user_id, pms_type))
            yield
