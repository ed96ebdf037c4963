"""
Retry policy and a generic async retry wrapper.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from ...config import Settings
from ...utils.logging import get_logger

T = TypeVar("T")

logger = get_logger("clinic.retry")


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: ``base_delay * multiplier ** (n - 1)``, capped at ``max_delay``."""

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 10.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.multiplier < 1:
            raise ValueError("base_delay must be >= 0 and multiplier >= 1")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.base_delay * self.multiplier ** (attempt - 1), self.max_delay)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.llm_max_attempts,
            base_delay=settings.llm_base_delay,
            multiplier=settings.llm_backoff_multiplier,
            max_delay=settings.llm_max_delay,
        )

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        return cls(max_attempts=1, base_delay=0.0)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``fn()`` up to ``policy.max_attempts`` times.

    Only exceptions in ``retry_on`` are retried; the last one is re-raised
    once attempts run out. Anything else propagates immediately.
    """
    attempt = 1
    while True:
        try:
            return await fn()
        except retry_on as e:
            if attempt >= policy.max_attempts:
                logger.error(f"retry: {description} failed after {attempt} attempts: {e}")
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                f"retry: {description} attempt {attempt}/{policy.max_attempts} failed ({e}); "
                f"retrying in {delay:.2f}s"
            )
            await sleep(delay)
            attempt += 1
