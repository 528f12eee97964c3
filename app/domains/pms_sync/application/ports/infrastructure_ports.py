"""
Vault, Sync Lock and Unit of Work Ports
"""

from contextlib import AbstractAsyncContextManager
from typing import Protocol, runtime_checkable

from ...domain.value_objects import PMSType


@runtime_checkable
class ICredentialVault(Protocol):
    """Symmetric encryption of stored API keys."""

    def encrypt(self, plaintext: str) -> str:
        """Encrypt to the ``<iv_hex>:<ciphertext_hex>`` storage format."""
        ...

    def decrypt(self, token: str) -> str:
        """Decrypt a value produced by ``encrypt``."""
        ...


@runtime_checkable
class ISyncLock(Protocol):
    """Single-flight guard per (user, pms_type)."""

    def hold(self, user_id: str, pms_type: PMSType) -> AbstractAsyncContextManager[None]:
        """
        Hold the lock for the duration of the block.

        Raises:
            SyncInProgressError: If another run holds the lock
        """
        ...


@runtime_checkable
class IUnitOfWork(Protocol):
    """Transaction boundary used to make sync steps durable in order."""

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
