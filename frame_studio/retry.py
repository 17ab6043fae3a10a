"""
Retry policy for artifact uploads.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, TypeVar

from loguru import logger

from frame_studio.errors import RetryableUploadError

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Exponential backoff: delays start at `initial_delay` and multiply each attempt."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    multiplier: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delays(self) -> Iterator[float]:
        """Delays slept between attempts (one fewer than max_attempts)."""
        delay = self.initial_delay
        for _ in range(max(self.max_attempts - 1, 0)):
            yield delay
            delay *= self.multiplier

    def call(self, operation: Callable[[], T], label: str = "operation") -> T:
        """
        Run `operation`, retrying only RetryableUploadError.

        Any other exception, including terminal upload errors, propagates on
        the first occurrence.
        """
        delays = self.delays()
        attempt = 1
        while True:
            try:
                return operation()
            except RetryableUploadError as e:
                delay = next(delays, None)
                if delay is None:
                    logger.error(f"{label} failed after {attempt} attempt(s): {e}")
                    raise
                logger.warning(f"{label} attempt {attempt}/{self.max_attempts} failed: {e}; "
                               f"retrying in {delay:.1f}s")
                self.sleep(delay)
                attempt += 1

    @classmethod
    def from_config(cls, config, sleep: Callable[[float], None] = None) -> 'RetryPolicy':
        return cls(
            max_attempts=config.RETRY_MAX_ATTEMPTS,
            initial_delay=config.RETRY_INITIAL_DELAY,
            multiplier=config.RETRY_MULTIPLIER,
            sleep=sleep or time.sleep
        )
