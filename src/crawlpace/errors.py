"""Exception types raised by crawlpace."""


class CrawlpaceError(Exception):
    """Base class for crawlpace errors."""


class TransportError(CrawlpaceError):
    """
    A single request failed at the transport level.

    Transport errors are soft failures: the request processor captures them
    on the RequestResult and keeps running.
    """


class ContentTooLargeError(TransportError):
    """Response body exceeded the configured size limit."""

    def __init__(self, url: str, limit: int) -> None:
        super().__init__(f"Content size limit exceeded for {url}: >{limit} bytes")
        self.url = url
        self.limit = limit


class ProcessingCancelledError(CrawlpaceError):
    """The run-wide cancellation signal was observed by the request processor."""
