# ============================================================================
# SCOPE: APPLICATION LAYER (PMS Sync)
# Description: Run-scoped cancellation shared by use cases and PMS clients
# ============================================================================
"""Cancellation token for a single sync or reclassification run.

The API layer cancels the token when the HTTP client disconnects. PMS
clients check it before every request and during retry backoff, so a
cancelled run stops issuing PMS calls instead of running unobserved.
"""

import asyncio
import logging

from ..domain.exceptions import SyncCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel("client disconnected")
        >>> token.raise_if_cancelled()  # raises SyncCancelledError
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.info(f"Run cancellation requested: {reason}")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SyncCancelledError(self._reason or "cancelled")

    async def sleep(self, delay: float) -> None:
        """Sleep up to ``delay`` seconds, waking early and raising on cancellation."""
        self.raise_if_cancelled()
        if delay > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                return
        self.raise_if_cancelled()
