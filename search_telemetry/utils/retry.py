"""Retry policy with exponential backoff and jitter for sink delivery."""
import random
from typing import Callable, Optional

from search_telemetry.core.errors import SinkError


class RetryPolicy:
    """Retry policy with exponential backoff."""

    def __init__(
        self,
        max_retries: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_factor: float = 2.0,
        jitter: float = 0.2,
        random_source: Optional[Callable[[float, float], float]] = None,
    ):
        """
        Args:
            max_retries: Retries allowed per batch after its first failed attempt;
                a batch is given up on after ``max_retries + 1`` failed attempts
            base_delay: Delay after the first failure (seconds)
            max_delay: Upper bound for the un-jittered delay (seconds)
            backoff_factor: Multiplier applied per consecutive failure
            jitter: Fractional +/- spread applied to every delay
            random_source: ``uniform(a, b)``-style callable, for deterministic tests
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self._uniform = random_source or random.uniform

    def get_delay(self, attempt: int) -> float:
        """Calculate delay after the given failed attempt (0-based)."""
        delay = min(self.base_delay * (self.backoff_factor ** attempt), self.max_delay)
        if self.jitter and delay > 0:
            delay *= 1 + self._uniform(-self.jitter, self.jitter)
        return max(0.0, delay)

    def should_retry(self, attempts: int, exception: Exception) -> bool:
        """Determine if a batch that failed ``attempts`` times should be retried."""
        if attempts > self.max_retries:
            return False

        # Permanent sink failures are never retried
        if isinstance(exception, SinkError) and not exception.is_transient:
            return False

        return True
