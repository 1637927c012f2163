"""Data models for crawlpace."""

from .config import ByteSize, CrawlpaceConfig, NetworkConfig, ProcessorOptions
from .events import EventEmitter, EventType, ProcessorEvent, ProcessorStats
from .request import (
    ExecutionOutcome,
    OutcomeKind,
    RequestContext,
    RequestResult,
    Stopwatch,
)

__all__ = [
    # Config
    "ByteSize",
    "CrawlpaceConfig",
    "NetworkConfig",
    "ProcessorOptions",
    # Events
    "EventEmitter",
    "EventType",
    "ProcessorEvent",
    "ProcessorStats",
    # Requests
    "ExecutionOutcome",
    "OutcomeKind",
    "RequestContext",
    "RequestResult",
    "Stopwatch",
]
