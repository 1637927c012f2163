"""Request scheduling: target queue, backoff, execution and the admission loop."""

from .backoff import BackoffChange, BackoffController
from .executor import RequestExecutor
from .processor import RequestProcessor, ResultSink
from .queue import TargetQueue

__all__ = [
    "BackoffChange",
    "BackoffController",
    "RequestExecutor",
    "RequestProcessor",
    "ResultSink",
    "TargetQueue",
]
