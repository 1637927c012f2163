"""
crawlpace - Adaptive outbound request dispatcher for web crawlers.

Usage:
    from crawlpace import AiohttpTransport, ProcessorOptions, RequestProcessor

    processor = RequestProcessor()
    processor.add("https://example.com/")

    async def handle(result):
        print(result.target, result.status_code, result.elapsed)

    async with AiohttpTransport() as transport:
        await processor.process(transport, handle, ProcessorOptions(max_concurrency=4))
"""

__version__ = "1.0.0"

from .errors import ContentTooLargeError, CrawlpaceError, ProcessingCancelledError, TransportError
from .http import AiohttpTransport, StreamingResponse, Transport
from .models import (
    CrawlpaceConfig,
    EventType,
    NetworkConfig,
    ProcessorEvent,
    ProcessorOptions,
    ProcessorStats,
    RequestResult,
)
from .processing import BackoffController, RequestExecutor, RequestProcessor, TargetQueue
from .sinks import JsonlSink

__all__ = [
    "__version__",
    # Core
    "RequestProcessor",
    "RequestExecutor",
    "BackoffController",
    "TargetQueue",
    "RequestResult",
    # Transport
    "AiohttpTransport",
    "StreamingResponse",
    "Transport",
    # Config
    "CrawlpaceConfig",
    "NetworkConfig",
    "ProcessorOptions",
    # Events
    "EventType",
    "ProcessorEvent",
    "ProcessorStats",
    # Sinks
    "JsonlSink",
    # Errors
    "CrawlpaceError",
    "TransportError",
    "ContentTooLargeError",
    "ProcessingCancelledError",
]
