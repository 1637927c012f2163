"""Protocol definitions for the transport used by the request processor."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager
from typing import Protocol


class StreamingResponse(Protocol):
    """
    Response whose body has not been read yet.

    Attributes:
        status_code: HTTP status code (200, 404, etc.)
        headers: Response headers (aiohttp supplies a case-insensitive
                 multi-value mapping, so repeated headers survive)
    """

    status_code: int
    headers: Mapping[str, str]

    def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield the response body in chunks until it is exhausted."""
        ...


class Transport(Protocol):
    """
    Protocol for anything that can issue a GET for a target.

    This abstraction allows for:
    - In-memory implementations in tests
    - Different backends (aiohttp, httpx, etc.)

    Transports do not enforce the per-request timeout; the request
    executor bounds the whole exchange, body included.
    """

    def stream(self, url: str) -> AbstractAsyncContextManager[StreamingResponse]:
        """
        Open a GET request for ``url``.

        Returns:
            Async context manager yielding the response; leaving the
            context releases the connection.

        Raises:
            TransportError, aiohttp.ClientError or OSError on network errors
        """
        ...
