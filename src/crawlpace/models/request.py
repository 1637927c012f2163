"""Per-request data passed between the request processor and its executor."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Stopwatch:
    """Monotonic timer that can be started and stopped once."""

    def __init__(self) -> None:
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._started is not None and self._stopped is None

    def start(self) -> None:
        if self._started is None:
            self._started = time.perf_counter()

    def stop(self) -> None:
        if self.is_running:
            self._stopped = time.perf_counter()

    @property
    def elapsed(self) -> float:
        """Seconds between start() and stop(), or until now while running."""
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return end - self._started


@dataclass
class RequestContext:
    """
    State for one scheduled request.

    Created when a target is dequeued and discarded once its result has
    been delivered.

    Attributes:
        request_number: Position of the request within the run (starts at 1)
        target: The URL being fetched
        start_delay: Seconds to wait before issuing the request, fixed at dequeue time
        request_timeout: Timeout for the request itself, in seconds
        cancellation: The run-wide cancellation signal
        timer: Measures the request, excluding the start delay
    """

    request_number: int
    target: str
    start_delay: float
    request_timeout: float
    cancellation: asyncio.Event
    timer: Stopwatch = field(default_factory=Stopwatch)


@dataclass(frozen=True)
class RequestResult:
    """
    Immutable outcome of a delivered request.

    Exactly one of the success payload (status_code, headers, content) or
    ``error`` is set. Soft failures (transport errors, timeouts) carry the
    exception in ``error`` and are delivered like successes.
    """

    target: str
    request_number: int
    started_at: datetime
    start_delay: float
    elapsed: float
    status_code: Optional[int] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    content: Optional[bytes] = None
    error: Optional[BaseException] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_timeout(self) -> bool:
        return isinstance(self.error, asyncio.TimeoutError)

    @property
    def content_length(self) -> int:
        return len(self.content) if self.content is not None else 0


class OutcomeKind(str, Enum):
    """How a single request execution ended."""

    SUCCESS = "success"
    SOFT_FAILURE = "soft_failure"
    CANCELLED = "cancelled"
    FATAL = "fatal"


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Tagged result returned by the request executor.

    The request processor decides what to do from ``kind`` alone: deliver
    ``result`` for SUCCESS and SOFT_FAILURE, drop CANCELLED, and re-raise
    ``error`` for FATAL.
    """

    kind: OutcomeKind
    context: RequestContext
    result: Optional[RequestResult] = None
    error: Optional[BaseException] = None

    @classmethod
    def delivered(cls, context: RequestContext, result: RequestResult) -> ExecutionOutcome:
        kind = OutcomeKind.SUCCESS if result.is_success else OutcomeKind.SOFT_FAILURE
        return cls(kind=kind, context=context, result=result)

    @classmethod
    def cancelled(cls, context: RequestContext) -> ExecutionOutcome:
        return cls(kind=OutcomeKind.CANCELLED, context=context)

    @classmethod
    def fatal(cls, context: RequestContext, error: BaseException) -> ExecutionOutcome:
        return cls(kind=OutcomeKind.FATAL, context=context, error=error)

    @property
    def is_deliverable(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.SOFT_FAILURE)
