"""Deadlines and exponential backoff for polling loops."""

import time
from dataclasses import dataclass, field
from typing import Iterator

from .types import ReadinessConfig


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff: ``base * multiplier**(n-1)`` capped at ``max_interval``."""

    base_interval: float = 0.25
    multiplier: float = 2.0
    max_interval: float = 5.0
    max_attempts: int = 60

    @classmethod
    def from_config(cls, config: ReadinessConfig) -> "BackoffPolicy":
        return cls(
            base_interval=config.base_interval,
            multiplier=config.multiplier,
            max_interval=config.max_interval,
            max_attempts=config.max_attempts,
        )

    def delay(self, attempt: int) -> float:
        """Wait after the given failed attempt (1-based)."""
        if attempt < 1:
            raise ValueError("attempt numbers start at 1")
        return min(self.max_interval, self.base_interval * self.multiplier ** (attempt - 1))

    def delays(self) -> Iterator[float]:
        """Waits between consecutive attempts; one fewer than max_attempts."""
        for attempt in range(1, self.max_attempts):
            yield self.delay(attempt)


@dataclass
class Deadline:
    """Monotonic deadline started at construction."""

    timeout: float
    started: float = field(default_factory=time.monotonic)

    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def remaining(self) -> float:
        return max(0.0, self.timeout - self.elapsed())

    def is_expired(self) -> bool:
        return self.elapsed() >= self.timeout
