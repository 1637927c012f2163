"""Result sinks that can be passed to RequestProcessor.process()."""

import json
import logging
from pathlib import Path
from types import TracebackType
from typing import Any, Optional, TextIO

from .models.request import RequestResult

logger = logging.getLogger(__name__)


def result_to_dict(result: RequestResult) -> dict[str, Any]:
    """Summarize a result as a JSON-serializable dictionary (body excluded)."""
    record: dict[str, Any] = {
        "url": result.target,
        "request_number": result.request_number,
        "started_at": result.started_at.isoformat(),
        "start_delay": round(result.start_delay, 4),
        "elapsed": round(result.elapsed, 4),
        "status_code": result.status_code,
        "content_length": result.content_length,
        "content_type": result.headers.get("Content-Type"),
    }
    if result.error is not None:
        record["error"] = str(result.error) or type(result.error).__name__
        record["error_type"] = type(result.error).__name__
    return record


class JsonlSink:
    """
    Writes one JSON line per delivered result.

    Lines are flushed as they are written so partial runs still leave a
    readable file behind.

    Example:
        with JsonlSink(Path("results.jsonl")) as sink:
            await processor.process(transport, sink, options)
        print(f"{sink.count} results written")
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._file: Optional[TextIO] = None
        self.count = 0

    def _ensure_file(self) -> TextIO:
        if self._file is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self._path.open("a", encoding="utf-8")
        return self._file

    def __call__(self, result: RequestResult) -> None:
        handle = self._ensure_file()
        handle.write(json.dumps(result_to_dict(result), ensure_ascii=False) + "\n")
        handle.flush()
        self.count += 1

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.debug(f"Wrote {self.count} results to {self._path}")

    def __enter__(self) -> "JsonlSink":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
