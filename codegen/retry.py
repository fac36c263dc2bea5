"""Bounded retry for calls to volatile external services."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from codegen.errors import ExternalServiceError

logger = logging.getLogger("codegen.retry")

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Attempt budget for one external call.

    Attributes:
        max_retries: Extra attempts after the first (0 = single attempt)
        retry_delay: Fixed pause between attempts, seconds
        timeout: Per-attempt timeout, seconds
    """

    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: float = 60.0

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")

    @property
    def attempts(self) -> int:
        return 1 + self.max_retries


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    label: str = "external call",
    on_retry: Optional[Callable[[int, Exception], Any]] = None,
) -> T:
    """Run *fn* until it succeeds or the attempt budget is spent.

    Timeouts and transient ExternalServiceErrors are retried after
    ``policy.retry_delay``. Non-transient ExternalServiceErrors are raised
    immediately. Anything else propagates unchanged.

    Raises:
        ExternalServiceError: Terminal failure once retries are exhausted
    """
    last_error: Optional[Exception] = None

    for attempt in range(policy.attempts):
        if attempt > 0:
            logger.warning(
                "%s: retry %d/%d after %.1fs (previous error: %s)",
                label, attempt, policy.max_retries, policy.retry_delay, last_error,
            )
            if on_retry is not None:
                on_retry(attempt, last_error)
            await asyncio.sleep(policy.retry_delay)

        try:
            return await asyncio.wait_for(fn(), timeout=policy.timeout)
        except asyncio.TimeoutError:
            last_error = ExternalServiceError(
                f"{label} timed out after {policy.timeout:.1f}s", transient=True,
            )
        except ExternalServiceError as e:
            if not e.transient:
                raise
            last_error = e

    raise ExternalServiceError(
        f"{label} failed after {policy.attempts} attempts: {last_error}",
        transient=False,
        status_code=getattr(last_error, "status_code", None),
    ) from last_error
