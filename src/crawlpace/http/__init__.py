"""Transports for crawlpace."""

from .client import AiohttpResponse, AiohttpTransport
from .protocols import StreamingResponse, Transport

__all__ = [
    "AiohttpResponse",
    "AiohttpTransport",
    "StreamingResponse",
    "Transport",
]
