"""Bounded retry schedule with linear backoff for provider fetches."""
from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0           # seconds; attempt n waits base_delay * n
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False, repr=False)

    def attempts(self) -> range:
        return range(1, self.max_attempts + 1)

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    async def backoff(self, attempt: int) -> None:
        await self.sleep(self.delay_for(attempt))
