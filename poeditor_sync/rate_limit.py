"""Per-operation rate limiting for POEditor API calls."""

import logging
import time
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class OperationClass(str, Enum):
    """Kinds of POEditor calls that are rate limited independently."""

    ADD_LANGUAGE = "add_language"
    """Add a language to the POEditor project"""

    DOWNLOAD = "download"
    """Export/download translations"""

    UPLOAD = "upload"
    """Upload a translation file (1 per 20 seconds on POEditor)"""


class RateLimiter:
    """Enforce a minimum interval between calls of the same operation class.

    Each class keeps its own last-call timestamp, so waiting for an upload
    slot never delays an add-language call and vice versa. The first call of
    a class never waits.

    Examples:
        >>> limiter = RateLimiter({OperationClass.UPLOAD: 20.0})
        >>> limiter.wait_if_needed(OperationClass.UPLOAD)  # first call
        0.0
        >>> limiter.mark(OperationClass.UPLOAD)
    """

    def __init__(
        self,
        intervals: Optional[dict[OperationClass, float]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the rate limiter.

        Args:
            intervals: Minimum interval in seconds per operation class.
                Classes not listed are not limited.
            clock: Monotonic clock returning seconds
            sleep: Function used to block for a number of seconds
        """
        self.intervals: dict[OperationClass, float] = dict(intervals or {})
        self._clock = clock
        self._sleep = sleep
        self._last_call: dict[OperationClass, float] = {}

    @classmethod
    def from_config(cls, rate_limits, **kwargs) -> "RateLimiter":
        """Create a limiter from a RateLimitConfig."""
        return cls(
            {
                OperationClass.ADD_LANGUAGE: rate_limits.add_language,
                OperationClass.DOWNLOAD: rate_limits.download,
                OperationClass.UPLOAD: rate_limits.upload,
            },
            **kwargs,
        )

    def interval(self, operation: OperationClass) -> float:
        return self.intervals.get(operation, 0.0)

    def remaining(self, operation: OperationClass) -> float:
        """Seconds left before the next call of this class may start."""
        last = self._last_call.get(operation)
        if last is None:
            return 0.0
        elapsed = self._clock() - last
        return max(0.0, self.interval(operation) - elapsed)

    def wait_if_needed(self, operation: OperationClass) -> float:
        """Block until the interval since the last mark of this class elapsed.

        Returns:
            Number of seconds slept (0.0 if no wait was needed)
        """
        delay = self.remaining(operation)
        if delay > 0:
            logger.debug(f"Rate limit: waiting {delay:.1f}s for {operation.value}")
            self._sleep(delay)
        return delay

    def mark(self, operation: OperationClass) -> None:
        """Record that a call of this class has just returned."""
        self._last_call[operation] = self._clock()

    def cooldown(self, operation: OperationClass) -> float:
        """Sleep one full interval of this class unconditionally.

        Returns:
            Number of seconds slept
        """
        delay = self.interval(operation)
        if delay > 0:
            logger.debug(f"Rate limit: cooling down {delay:.1f}s for {operation.value}")
            self._sleep(delay)
        return delay
