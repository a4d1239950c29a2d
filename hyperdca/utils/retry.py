"""Bounded exponential-backoff retries for exchange calls."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


def _never(_exc: BaseException) -> bool:
    return False


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.5  # seconds
    backoff_multiplier: float = 2.0
    is_retryable: Callable[[BaseException], bool] = field(default=_never)

    def delay_for(self, attempt: int) -> float:
        """Delay after the given zero-based failed attempt."""
        return self.base_delay * (self.backoff_multiplier ** attempt)


async def retry_async(
    fn: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    label: str = "call",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """Await ``fn()`` until it succeeds, retrying only errors the policy accepts.

    The last error is re-raised once attempts are exhausted.
    """
    for attempt in range(policy.max_attempts):
        try:
            return await fn()
        except Exception as e:
            if not policy.is_retryable(e) or attempt == policy.max_attempts - 1:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                f"{label} attempt {attempt + 1}/{policy.max_attempts} failed: {e}; "
                f"retrying in {delay:.2f}s"
            )
            await sleep(delay)
    raise RuntimeError(f"{label}: retry policy allows no attempts")
