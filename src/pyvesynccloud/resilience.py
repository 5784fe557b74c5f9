"""Retry delay calculation for the login loop."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from pyvesynccloud.const import DEFAULT_LOGIN_BACKOFF, DEFAULT_LOGIN_RETRY_ATTEMPTS


__all__ = ["ExponentialBackoff", "ExponentialBackoffConfig"]

_LOGGER = logging.getLogger(__name__)


@dataclass
class ExponentialBackoffConfig:
    """Configuration for exponential backoff.

    Attributes:
        base_delay: Delay before the second attempt, in seconds.
        max_delay: Upper bound for any single delay, in seconds.
        max_retries: Total number of attempts.
        exponential_base: Multiplier applied per attempt.
        jitter: Randomize each delay between 0 and its computed value.
    """

    base_delay: float = DEFAULT_LOGIN_BACKOFF
    max_delay: float = 60.0
    max_retries: int = DEFAULT_LOGIN_RETRY_ATTEMPTS
    exponential_base: float = 2.0
    jitter: bool = False


class ExponentialBackoff:
    """Exponential backoff calculator for retry delays.

    With the defaults, attempt ``n`` (0-indexed) waits ``base_delay * 2**n``
    seconds before attempt ``n + 1``.

    Example:
        backoff = ExponentialBackoff(base_delay=1.0, max_retries=3)

        for attempt in range(backoff.max_retries):
            if await try_login():
                break
            if attempt < backoff.max_retries - 1:
                await asyncio.sleep(backoff.calculate_delay(attempt))
    """

    def __init__(
        self,
        base_delay: float = DEFAULT_LOGIN_BACKOFF,
        max_delay: float = 60.0,
        max_retries: int = DEFAULT_LOGIN_RETRY_ATTEMPTS,
        exponential_base: float = 2.0,
        *,
        jitter: bool = False,
    ) -> None:
        """Initialize exponential backoff calculator.

        Args:
            base_delay: Initial delay in seconds.
            max_delay: Maximum delay in seconds.
            max_retries: Maximum number of attempts (at least one).
            exponential_base: Multiplier for exponential growth.
            jitter: Add randomness to delays.
        """
        self.config = ExponentialBackoffConfig(
            base_delay=max(base_delay, 0.0),
            max_delay=max_delay,
            max_retries=max(max_retries, 1),
            exponential_base=exponential_base,
            jitter=jitter,
        )

    @property
    def max_retries(self) -> int:
        """Get maximum number of attempts."""
        return self.config.max_retries

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay after a given failed attempt.

        Args:
            attempt: Attempt number that just failed (0-indexed).

        Returns:
            Delay in seconds before the next attempt.
        """
        delay = self.config.base_delay * (self.config.exponential_base**attempt)
        delay = min(delay, self.config.max_delay)

        if self.config.jitter:
            delay = random.uniform(0, delay)  # noqa: S311

        _LOGGER.debug("Backoff delay for attempt %d: %.2fs", attempt + 1, delay)
        return delay
