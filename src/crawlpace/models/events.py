"""Event types emitted by the request processor."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional


class EventType(str, Enum):
    """Types of events emitted while processing requests."""

    # Request lifecycle
    REQUEST_SCHEDULED = "request_scheduled"
    REQUEST_COMPLETED = "request_completed"
    REQUEST_FAILED = "request_failed"
    REQUEST_CANCELLED = "request_cancelled"

    # Throttling
    BACKOFF_INCREASED = "backoff_increased"
    BACKOFF_DECREASED = "backoff_decreased"

    # Run lifecycle
    PROCESSING_COMPLETED = "processing_completed"


@dataclass
class ProcessorEvent:
    """
    Event emitted by RequestProcessor.process().

    Example:
        def on_event(event: ProcessorEvent) -> None:
            if event.type == EventType.BACKOFF_INCREASED:
                print(f"Slowing down: backoff is now {event.backoff:.1f}s")
            elif event.type == EventType.REQUEST_FAILED:
                print(f"Error: {event.url} - {event.error}")

        await processor.process(transport, sink, options, on_event=on_event)
    """

    type: EventType

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    request_number: Optional[int] = None
    url: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    # Timing, in seconds
    delay: Optional[float] = None
    elapsed: Optional[float] = None
    backoff: Optional[float] = None

    status_code: Optional[int] = None
    total: Optional[int] = None

    @property
    def is_error(self) -> bool:
        """Check if this is an error event."""
        return self.type == EventType.REQUEST_FAILED


# Type alias for event callbacks
EventEmitter = Callable[[ProcessorEvent], None]


@dataclass
class ProcessorStats:
    """
    Cumulative statistics for one processing run.

    Reset at the start of every RequestProcessor.process() call.
    """

    requests_started: int = 0
    results_delivered: int = 0
    soft_failures: int = 0
    # Requests that observed cancellation but finished after the signal was
    # cleared again; a run that stays cancelled raises before counting them.
    cancelled: int = 0
    bytes_downloaded: int = 0
    peak_backoff: float = 0.0
    duration_seconds: float = 0.0

    @property
    def success_rate(self) -> float:
        """Calculate success rate of delivered results as a percentage."""
        if self.results_delivered == 0:
            return 0.0
        return ((self.results_delivered - self.soft_failures) / self.results_delivered) * 100

    def to_dict(self) -> dict:
        """Convert stats to dictionary for serialization."""
        return {
            "requests_started": self.requests_started,
            "results_delivered": self.results_delivered,
            "soft_failures": self.soft_failures,
            "cancelled": self.cancelled,
            "bytes_downloaded": self.bytes_downloaded,
            "peak_backoff": round(self.peak_backoff, 3),
            "duration_seconds": round(self.duration_seconds, 2),
            "success_rate": round(self.success_rate, 1),
        }
