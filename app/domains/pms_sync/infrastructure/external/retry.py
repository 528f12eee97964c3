# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: Resilience patterns for PMS API calls
# ============================================================================
"""Bounded retry with exponential backoff for PMS clients.

Only errors flagged ``retryable`` (network failures, timeouts, 429, 5xx)
are retried. Credential and payload errors propagate on the first attempt.
Backoff sleeps go through the run's CancellationToken so a cancelled run
stops waiting immediately.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from app.config.settings import Settings

from ...application.run_context import CancellationToken
from ...domain.exceptions import PMSError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry configuration.

    Attributes:
        max_attempts: Total attempts per call, including the first.
        base_delay: Delay in seconds after the first failure.
        max_delay: Upper bound for any single delay.
        multiplier: Growth factor between consecutive delays.
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays cannot be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.PMS_RETRY_MAX_ATTEMPTS,
            base_delay=settings.PMS_RETRY_BASE_DELAY,
            max_delay=settings.PMS_RETRY_MAX_DELAY,
            multiplier=settings.PMS_RETRY_MULTIPLIER,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff after the given failed attempt (1-based)."""
        return min(self.max_delay, self.base_delay * (self.multiplier ** (attempt - 1)))

    def should_retry(self, error: Exception, attempt: int) -> bool:
        return attempt < self.max_attempts and isinstance(error, PMSError) and error.retryable

    async def execute(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        cancel_token: CancellationToken | None = None,
        operation: str = "request",
        **kwargs: Any,
    ) -> T:
        """Run ``func`` under the policy.

        Args:
            func: Async callable performing one attempt.
            *args: Positional arguments for func.
            cancel_token: Run cancellation token.
            operation: Label used in log messages.
            **kwargs: Keyword arguments for func.

        Returns:
            Result of the first successful attempt.

        Raises:
            PMSError: Last error once attempts are exhausted, or any
                non-retryable error.
            SyncCancelledError: If the run is cancelled.
        """
        token = cancel_token or CancellationToken()
        attempt = 0
        while True:
            token.raise_if_cancelled()
            attempt += 1
            try:
                return await func(*args, **kwargs)
            except PMSError as e:
                if not self.should_retry(e, attempt):
                    if e.retryable:
                        logger.error(f"{operation} failed after {attempt} attempts: {e.message}")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"{operation} failed (attempt {attempt}/{self.max_attempts}): {e.message}. "
                    f"Retrying in {delay:.2f}s"
                )
                await token.sleep(delay)
