"""Latency-driven backoff shared by all requests of a run."""

import logging
from enum import Enum

from ..models.config import ProcessorOptions

logger = logging.getLogger(__name__)


class BackoffChange(str, Enum):
    """Effect of recording one response on the backoff."""

    INCREASED = "increased"
    DECREASED = "decreased"
    UNCHANGED = "unchanged"


class BackoffController:
    """
    Extra start delay that grows on slow responses and shrinks on fast ones.

    A single slow response (slower than ``timeout_before_throttle``) raises
    the backoff by one step immediately. Lowering it by one step takes
    ``min_sequential_successes_to_minimise_throttling`` fast responses in a
    row, which damps oscillation. There is no upper bound.

    The value is tracked in whole milliseconds so repeated increments and
    decrements return exactly to zero.

    Example:
        backoff = BackoffController(options)

        delay = options.delay_between_request_start + backoff.backoff
        ...
        backoff.record(result.elapsed)
    """

    def __init__(self, options: ProcessorOptions) -> None:
        """
        Initialize the controller.

        Args:
            options: Processor options providing the throttle threshold,
                     step size and recovery streak length
        """
        self._threshold = options.timeout_before_throttle
        self._step_ms = int(round(options.throttling_request_backoff * 1000))
        self._required_streak = options.min_sequential_successes_to_minimise_throttling

        self.backoff_ms = 0
        self.fast_streak = 0

    @property
    def backoff(self) -> float:
        """Current backoff in seconds."""
        return self.backoff_ms / 1000

    def is_slow(self, elapsed: float) -> bool:
        """Check whether a response time counts as slow."""
        return self._threshold > 0 and elapsed > self._threshold

    def record(self, elapsed: float) -> BackoffChange:
        """
        Update the backoff from one delivered response.

        Args:
            elapsed: Measured request duration in seconds

        Returns:
            How the backoff changed
        """
        if self.is_slow(elapsed):
            self.fast_streak = 0
            self.backoff_ms += self._step_ms
            logger.info(f"Increased backoff to {self.backoff_ms}ms.")
            return BackoffChange.INCREASED

        if self.backoff_ms > 0:
            self.fast_streak += 1
            if self.fast_streak == self._required_streak:
                self.backoff_ms = max(0, self.backoff_ms - self._step_ms)
                self.fast_streak = 0
                logger.info(f"Decreased backoff to {self.backoff_ms}ms.")
                return BackoffChange.DECREASED

        return BackoffChange.UNCHANGED
