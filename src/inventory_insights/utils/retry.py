"""
Retry utilities with capped exponential backoff.

Used to wait for server-side provisioning (the profile row created by a
database trigger after sign-up) with a bounded number of polls and an explicit
maximum wait per attempt.
"""

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from inventory_insights.utils.logger import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 1
    base_delay: float = 2.0  # Delay before the first retry, in seconds
    max_delay: float = 10.0  # Cap applied to every individual delay
    exponential_base: float = 2.0
    jitter: bool = False

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays cannot be negative")


class ExponentialBackoff:
    """
    Exponential backoff calculator with optional jitter.

    - Base delay applies to the first retry
    - Each further retry multiplies the delay by ``exponential_base``
    - Random jitter (±25%) when enabled
    - Every delay is capped at ``max_delay``
    """

    def __init__(self, config: RetryConfig):
        self.config = config
        self.attempt = 0

    def reset(self) -> None:
        """Reset attempt counter."""
        self.attempt = 0

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.config.max_retries

    def calculate_delay(self) -> float:
        """
        Calculate delay for the next retry and advance the attempt counter.

        Returns:
            Delay in seconds
        """
        delay = self.config.base_delay * (self.config.exponential_base ** self.attempt)

        if self.config.jitter:
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        delay = max(0.0, min(delay, self.config.max_delay))

        self.attempt += 1

        logger.debug(f"Calculated retry delay: {delay:.2f}s (attempt {self.attempt})")
        return delay


def poll_until(fetch: Callable[[], T],
               is_ready: Callable[[T], bool],
               config: Optional[RetryConfig] = None,
               sleep: Callable[[float], None] = time.sleep,
               description: str = "operation") -> T:
    """
    Call ``fetch`` until ``is_ready`` accepts its result or retries run out.

    Exceptions raised by ``fetch`` propagate immediately; only a not-ready
    result is retried.

    Args:
        fetch: Zero-argument callable producing a result
        is_ready: Predicate deciding whether the result is final
        config: Retry configuration (one retry after 2s if None)
        sleep: Sleep function, injectable for tests
        description: Name used in log messages

    Returns:
        The last result produced by ``fetch``, ready or not
    """
    backoff = ExponentialBackoff(config or RetryConfig())

    result = fetch()
    while not is_ready(result):
        if backoff.exhausted:
            logger.warning(f"{description} not ready after {backoff.attempt} retries")
            break

        delay = backoff.calculate_delay()
        logger.info(f"{description} not ready, retrying in {delay:.2f}s (attempt {backoff.attempt})")
        sleep(delay)
        result = fetch()

    return result
