"""
Retry policy for the directory upload queue.

Failed uploads are not retried in place: the orchestrator moves the file to
the back of its work queue (round-robin). This module decides how many
attempts a file gets before it is given up on, and how long to wait before a
file's next attempt.

Usage:
    from s3deploy.utils.retry import RetryPolicy

    policy = RetryPolicy(max_attempts=5)
    if policy.should_retry(attempts_so_far):
        time.sleep(policy.delay_before(attempts_so_far))
"""

import random
from dataclasses import dataclass

from s3deploy.utils.logging import get_logger

logger = get_logger(__name__)


# ============================================================================
# Retry Configuration
# ============================================================================

@dataclass(frozen=True)
class RetryPolicy:
    """
    Per-file retry budget and pacing.

    Attributes:
        max_attempts: Maximum number of attempts per file (including the first)
        base_delay: Delay before a file's second attempt, in seconds.
            0 (the default) requeues without waiting.
        max_delay: Maximum delay between attempts in seconds
        backoff_multiplier: Multiplier for exponential backoff
        jitter: Whether to add randomness to delays
    """

    max_attempts: int = 5
    base_delay: float = 0.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay cannot be negative, got {self.base_delay}")

    def should_retry(self, attempts: int) -> bool:
        """Whether a file that has failed ``attempts`` times gets another attempt."""
        return attempts < self.max_attempts

    def delay_before(self, attempts: int) -> float:
        """
        Seconds to wait before the next attempt of a file that has already
        been attempted ``attempts`` times. The first attempt never waits.
        """
        if attempts <= 0 or self.base_delay == 0:
            return 0.0
        delay = calculate_backoff_delay(
            attempt=attempts - 1,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            multiplier=self.backoff_multiplier,
            jitter=self.jitter,
        )
        logger.debug(
            f"Backing off {delay:.2f}s before attempt {attempts + 1}/{self.max_attempts}",
            extra={"attempt": attempts + 1, "delay_seconds": delay},
        )
        return delay


def calculate_backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    multiplier: float,
    jitter: bool,
) -> float:
    """
    Calculate delay for exponential backoff with optional jitter.

    Formula:
        delay = min(base_delay * (multiplier ** attempt), max_delay)
        if jitter:
            delay = delay * random.uniform(0.5, 1.5)

    Args:
        attempt: Current retry number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap
        multiplier: Exponential multiplier
        jitter: Whether to add random jitter

    Returns:
        Calculated delay in seconds

    Example:
        >>> calculate_backoff_delay(2, base_delay=1.0, max_delay=60.0,
        ...                         multiplier=2.0, jitter=False)
        4.0
    """
    delay = min(base_delay * (multiplier ** attempt), max_delay)

    # ±50% randomness
    if jitter:
        delay = delay * random.uniform(0.5, 1.5)

    return delay
