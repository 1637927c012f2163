"""Runs a single scheduled request to completion."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TypeVar

import aiohttp

from ..errors import TransportError
from ..http.protocols import Transport
from ..models.request import ExecutionOutcome, RequestContext, RequestResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _RunCancelled(Exception):
    """Cancellation won the race against a request."""


@dataclass(frozen=True)
class _Download:
    status_code: int
    headers: Mapping[str, str]
    content: bytes


class RequestExecutor:
    """
    Executes one RequestContext against a transport.

    The executor never raises for request-level problems. It returns an
    ExecutionOutcome tagged as:
    - SUCCESS: body fully read
    - SOFT_FAILURE: transport error or timeout, carried on the result
    - CANCELLED: the run was cancelled before or during the request
    - FATAL: anything else, carrying the original exception

    Example:
        executor = RequestExecutor(transport)
        outcome = await executor.execute(context)
        if outcome.is_deliverable:
            await sink(outcome.result)
    """

    # Exceptions that are reported on the result instead of aborting the run
    SOFT_FAILURE_EXCEPTIONS = (
        TransportError,
        aiohttp.ClientError,
        asyncio.TimeoutError,
        OSError,
    )

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def execute(self, context: RequestContext) -> ExecutionOutcome:
        """
        Run the request described by ``context``.

        Args:
            context: The scheduled request

        Returns:
            Tagged outcome of the request
        """
        try:
            return await self._perform(context)
        except Exception as e:
            context.timer.stop()
            logger.debug(f"Request #{context.request_number} failed unexpectedly: {e!r}")
            return ExecutionOutcome.fatal(context, e)

    async def _perform(self, context: RequestContext) -> ExecutionOutcome:
        if context.start_delay > 0 and await self._cancelled_during_delay(context):
            logger.debug(f"Request #{context.request_number} cancelled before starting.")
            return ExecutionOutcome.cancelled(context)

        started_at = datetime.now(timezone.utc)
        context.timer.start()

        try:
            download = await self._with_deadline(self._download(context), context)
        except _RunCancelled:
            context.timer.stop()
            logger.debug(f"Request #{context.request_number} cancelled.")
            return ExecutionOutcome.cancelled(context)
        except self.SOFT_FAILURE_EXCEPTIONS as e:
            context.timer.stop()
            elapsed_ms = int(context.timer.elapsed * 1000)
            logger.debug(f"Request #{context.request_number} completed with error in {elapsed_ms}ms.")
            logger.debug(f"Request #{context.request_number} exception: {e!r}", exc_info=e)
            return ExecutionOutcome.delivered(
                context,
                RequestResult(
                    target=context.target,
                    request_number=context.request_number,
                    started_at=started_at,
                    start_delay=context.start_delay,
                    elapsed=context.timer.elapsed,
                    error=e,
                ),
            )

        # Finished downloading just as the run was cancelled
        if context.cancellation.is_set():
            logger.debug(f"Request #{context.request_number} cancelled.")
            return ExecutionOutcome.cancelled(context)

        elapsed_ms = int(context.timer.elapsed * 1000)
        logger.debug(f"Request #{context.request_number} completed successfully in {elapsed_ms}ms.")

        return ExecutionOutcome.delivered(
            context,
            RequestResult(
                target=context.target,
                request_number=context.request_number,
                started_at=started_at,
                start_delay=context.start_delay,
                elapsed=context.timer.elapsed,
                status_code=download.status_code,
                headers=download.headers,
                content=download.content,
            ),
        )

    async def _cancelled_during_delay(self, context: RequestContext) -> bool:
        """Sleep for the start delay. Returns True if the run was cancelled meanwhile."""
        try:
            await asyncio.wait_for(context.cancellation.wait(), timeout=context.start_delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def _download(self, context: RequestContext) -> _Download:
        """Issue the request and buffer the whole body."""
        async with self._transport.stream(context.target) as response:
            buffer = bytearray()
            async for chunk in response.iter_chunks():
                buffer.extend(chunk)

            # Only time the request, not what the caller does with the result
            context.timer.stop()

            return _Download(
                status_code=response.status_code,
                headers=response.headers,
                content=bytes(buffer),
            )

    async def _with_deadline(self, work: Awaitable[T], context: RequestContext) -> T:
        """
        Await ``work`` bounded by the first of run cancellation and the request timeout.

        Raises:
            _RunCancelled: The cancellation signal fired first
            asyncio.TimeoutError: The request timeout elapsed first
        """
        work_task = asyncio.ensure_future(work)
        cancel_waiter = asyncio.ensure_future(context.cancellation.wait())

        try:
            done, _ = await asyncio.wait(
                {work_task, cancel_waiter},
                timeout=context.request_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_waiter.cancel()
            if not work_task.done():
                work_task.cancel()

        if work_task in done:
            return work_task.result()

        # Let the abandoned request release its connection
        await asyncio.gather(work_task, return_exceptions=True)

        if cancel_waiter in done:
            raise _RunCancelled()
        raise asyncio.TimeoutError(f"Request timed out after {context.request_timeout}s: {context.target}")
