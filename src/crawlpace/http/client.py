"""aiohttp-backed transport for the request processor."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from types import TracebackType

import aiohttp
from aiohttp import hdrs

from ..errors import ContentTooLargeError
from ..models.config import NetworkConfig

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; crawlpace/1.0)"


class AiohttpResponse:
    """StreamingResponse wrapper around an open aiohttp response."""

    CHUNK_SIZE = 8192

    def __init__(self, response: aiohttp.ClientResponse, max_content_size: int) -> None:
        self._response = response
        self._max_content_size = max_content_size
        self.status_code: int = response.status
        self.headers: Mapping[str, str] = response.headers
        self.url = str(response.url)

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        # Check Content-Length if available
        content_length = self._response.headers.get(hdrs.CONTENT_LENGTH)
        if content_length and content_length.isdigit() and int(content_length) > self._max_content_size:
            raise ContentTooLargeError(self.url, self._max_content_size)

        received = 0
        async for chunk in self._response.content.iter_chunked(self.CHUNK_SIZE):
            received += len(chunk)
            if received > self._max_content_size:
                raise ContentTooLargeError(self.url, self._max_content_size)
            yield chunk


class AiohttpTransport:
    """
    Transport issuing GET requests through a shared aiohttp session.

    Features:
    - Connection pooling with total and per-host limits
    - Content size limits to prevent memory exhaustion
    - Optional proxy and extra headers

    Retries and the per-request timeout are deliberately absent: the
    request processor owns timing and never retries.

    Example:
        async with AiohttpTransport(NetworkConfig()) as transport:
            async with transport.stream("https://example.com") as response:
                body = b"".join([chunk async for chunk in response.iter_chunks()])
    """

    def __init__(self, config: NetworkConfig | None = None) -> None:
        """
        Initialize the transport.

        Args:
            config: Network settings (user agent, proxy, limits)
        """
        self._config = config or NetworkConfig()
        self._user_agent = self._config.user_agent or DEFAULT_USER_AGENT
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> AiohttpTransport:
        """Enter async context and create session."""
        connector = aiohttp.TCPConnector(
            limit=self._config.connection_limit,
            limit_per_host=self._config.per_host_connection_limit,
            ttl_dns_cache=300,
        )
        headers = {"User-Agent": self._user_agent}
        headers.update(self._config.headers)
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=None, sock_connect=self._config.connect_timeout),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and close session."""
        if self._session:
            await self._session.close()
            self._session = None

    @asynccontextmanager
    async def stream(self, url: str) -> AsyncIterator[AiohttpResponse]:
        """
        Perform an HTTP GET request and yield the unread response.

        Args:
            url: The URL to fetch

        Yields:
            AiohttpResponse with status, headers and a chunk iterator

        Raises:
            aiohttp.ClientError: On network errors
            ContentTooLargeError: While reading a body over the size limit
        """
        if self._session is None:
            raise RuntimeError("Transport not initialized. Use 'async with' context manager.")

        async with self._session.get(url, proxy=self._config.proxy, allow_redirects=True) as response:
            logger.debug(f"GET {url} -> {response.status}")
            yield AiohttpResponse(response, self._config.max_content_size)
