"""Admission loop: runs queued targets under a concurrency cap."""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
import time
from collections.abc import Awaitable
from typing import Callable, Optional, Union, cast

from ..errors import ProcessingCancelledError
from ..http.protocols import Transport
from ..models.config import ProcessorOptions
from ..models.events import EventEmitter, EventType, ProcessorEvent, ProcessorStats
from ..models.request import ExecutionOutcome, OutcomeKind, RequestContext, RequestResult
from .backoff import BackoffChange, BackoffController
from .executor import RequestExecutor
from .queue import TargetQueue

logger = logging.getLogger(__name__)

# Callable receiving each delivered result; may be sync or async
ResultSink = Callable[[RequestResult], Union[Awaitable[None], None]]


class RequestProcessor:
    """
    Dispatches queued targets over a transport with adaptive pacing.

    Requests start in FIFO order with at most ``max_concurrency`` in flight.
    Each request waits ``delay_between_request_start`` plus random jitter
    plus the current backoff before it is issued. Results are handed to the
    sink one at a time in completion order, and each delivered result's
    latency then feeds the backoff.

    Targets can be added while process() is running, for instance from the
    result sink as new links are discovered.

    Example:
        processor = RequestProcessor()
        processor.add("https://example.com/")

        async def sink(result: RequestResult) -> None:
            if result.is_success:
                for link in extract_links(result.content):
                    processor.add(link)

        async with AiohttpTransport() as transport:
            total = await processor.process(transport, sink, ProcessorOptions())
    """

    def __init__(self) -> None:
        self._queue = TargetQueue()
        self._stats = ProcessorStats()
        self._random = random.Random()

    def add(self, target: str) -> None:
        """Queue a target. Safe to call while process() is running."""
        self._queue.add(target)

    @property
    def pending_requests(self) -> int:
        """Queued targets plus requests started but not yet delivered."""
        return self._queue.pending

    @property
    def stats(self) -> ProcessorStats:
        """Statistics for the current or most recent run."""
        return self._stats

    async def process(
        self,
        transport: Transport,
        result_sink: ResultSink,
        options: ProcessorOptions,
        cancellation: Optional[asyncio.Event] = None,
        *,
        on_event: Optional[EventEmitter] = None,
    ) -> int:
        """
        Process queued targets until the queue and in-flight set are empty.

        Args:
            transport: Issues the requests
            result_sink: Receives every delivered result (successes and
                         soft failures); an exception here aborts the run
            options: Concurrency, pacing and throttling options
            cancellation: Run-wide cancellation signal
            on_event: Optional callback for request and backoff events

        Returns:
            Number of requests issued during this run

        Raises:
            ProcessingCancelledError: The cancellation signal was set
            Exception: Whatever the result sink or an unexpected executor
                       failure raised, unchanged
        """
        if options is None:
            raise ValueError("options is required")

        if cancellation is None:
            cancellation = asyncio.Event()
        executor = RequestExecutor(transport)
        backoff = BackoffController(options)
        in_flight: dict[asyncio.Task[ExecutionOutcome], RequestContext] = {}
        request_count = 0

        self._stats = ProcessorStats()
        start_time = time.monotonic()

        def emit(event: ProcessorEvent) -> None:
            if on_event:
                on_event(event)

        try:
            while in_flight or self._queue:
                self._raise_if_cancelled(cancellation)

                while self._queue and len(in_flight) < options.max_concurrency:
                    target = self._queue.pop()
                    context = RequestContext(
                        request_number=request_count + 1,
                        target=target,
                        start_delay=self._start_delay(options, backoff),
                        request_timeout=options.request_timeout,
                        cancellation=cancellation,
                    )

                    logger.debug(
                        f"Request #{context.request_number} ({target}) starting with a "
                        f"{context.start_delay * 1000:.0f}ms delay."
                    )
                    emit(
                        ProcessorEvent(
                            type=EventType.REQUEST_SCHEDULED,
                            request_number=context.request_number,
                            url=target,
                            delay=context.start_delay,
                        )
                    )

                    task = asyncio.ensure_future(executor.execute(context))
                    in_flight[task] = context
                    request_count += 1
                    self._stats.requests_started += 1

                self._raise_if_cancelled(cancellation)

                await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)

                self._raise_if_cancelled(cancellation)

                # Deliver everything that finished in this tick, in start order
                completed = [task for task in in_flight if task.done()]
                for task in completed:
                    context = in_flight.pop(task)
                    self._queue.settle()

                    outcome = task.result()
                    if outcome.kind == OutcomeKind.FATAL:
                        raise cast(Exception, outcome.error)

                    if outcome.kind == OutcomeKind.CANCELLED:
                        self._stats.cancelled += 1
                        emit(
                            ProcessorEvent(
                                type=EventType.REQUEST_CANCELLED,
                                request_number=context.request_number,
                                url=context.target,
                            )
                        )
                        continue

                    result = cast(RequestResult, outcome.result)
                    self._record_delivery(result, emit)

                    await self._deliver(result_sink, result)

                    self._update_backoff(backoff, result, emit)
        finally:
            await self._abandon(in_flight)
            self._stats.duration_seconds = time.monotonic() - start_time

        logger.debug(f"Completed processing {request_count} requests.")
        emit(
            ProcessorEvent(
                type=EventType.PROCESSING_COMPLETED,
                total=request_count,
                message=f"Completed processing {request_count} requests",
            )
        )
        return request_count

    def _start_delay(self, options: ProcessorOptions, backoff: BackoffController) -> float:
        """Base delay plus jitter plus the backoff in effect right now."""
        delay = options.delay_between_request_start
        if options.delay_jitter > 0:
            delay += self._random.uniform(0, options.delay_jitter)
        return delay + backoff.backoff

    @staticmethod
    def _raise_if_cancelled(cancellation: asyncio.Event) -> None:
        if cancellation.is_set():
            raise ProcessingCancelledError("Request processing was cancelled")

    def _record_delivery(self, result: RequestResult, emit: EventEmitter) -> None:
        self._stats.results_delivered += 1
        self._stats.bytes_downloaded += result.content_length

        if result.is_success:
            emit(
                ProcessorEvent(
                    type=EventType.REQUEST_COMPLETED,
                    request_number=result.request_number,
                    url=result.target,
                    elapsed=result.elapsed,
                    status_code=result.status_code,
                )
            )
        else:
            self._stats.soft_failures += 1
            emit(
                ProcessorEvent(
                    type=EventType.REQUEST_FAILED,
                    request_number=result.request_number,
                    url=result.target,
                    elapsed=result.elapsed,
                    error=str(result.error) or type(result.error).__name__,
                )
            )

    @staticmethod
    async def _deliver(result_sink: ResultSink, result: RequestResult) -> None:
        outcome = result_sink(result)
        if inspect.isawaitable(outcome):
            await outcome

    def _update_backoff(self, backoff: BackoffController, result: RequestResult, emit: EventEmitter) -> None:
        change = backoff.record(result.elapsed)
        if change == BackoffChange.UNCHANGED:
            return

        self._stats.peak_backoff = max(self._stats.peak_backoff, backoff.backoff)
        event_type = (
            EventType.BACKOFF_INCREASED if change == BackoffChange.INCREASED else EventType.BACKOFF_DECREASED
        )
        emit(
            ProcessorEvent(
                type=event_type,
                request_number=result.request_number,
                url=result.target,
                elapsed=result.elapsed,
                backoff=backoff.backoff,
            )
        )

    async def _abandon(self, in_flight: dict[asyncio.Task[ExecutionOutcome], RequestContext]) -> None:
        """Cancel and reap requests left running when the loop exits early."""
        if not in_flight:
            return

        logger.debug(f"Abandoning {len(in_flight)} in-flight requests.")
        tasks = list(in_flight)
        for task in tasks:
            task.cancel()
        self._queue.settle(len(tasks))
        in_flight.clear()

        await asyncio.gather(*tasks, return_exceptions=True)
