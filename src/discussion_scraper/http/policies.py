from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Optional

from discussion_scraper.core.models import RetrySettings


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for job retry behavior."""

    max_attempts: int = 3
    delay_s: float = 2.0
    backoff_factor: float = 1.0
    jitter_s: float = 0.0
    attempt_timeout_s: Optional[float] = 120.0

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            delay_s=settings.delay_ms / 1000.0,
            backoff_factor=settings.backoff_factor,
            jitter_s=settings.jitter_ms / 1000.0,
            attempt_timeout_s=settings.attempt_timeout_s,
        )

    def delay_for(self, attempt_index: int) -> float:
        """Delay before the retry following attempt ``attempt_index`` (0-based)."""
        # factor 1.0 keeps the delay fixed
        delay = self.delay_s * (self.backoff_factor**attempt_index)
        if self.jitter_s > 0:
            delay += random.uniform(0, self.jitter_s)
        return max(0.0, delay)


async def backoff_sleep(policy: RetryPolicy, attempt_index: int) -> None:
    """Wait before the next attempt without blocking other jobs."""
    delay = policy.delay_for(attempt_index)
    if delay > 0:
        await asyncio.sleep(delay)
