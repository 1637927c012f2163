"""Pydantic configuration models for crawlpace."""

import re
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

_SIZE_PATTERN = re.compile(r"^(?P<number>\d+(?:\.\d+)?)\s*(?P<unit>[kmg]?)b?$")
_SIZE_UNITS = {"": 1, "k": 1024, "m": 1024**2, "g": 1024**3}


class ByteSize(int):
    """
    Byte count that also accepts sizes such as ``"512kb"``, ``"5mb"`` or ``"1.5 g"``.

    Validation returns a plain ``int`` so dumped configs stay readable.
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> Any:
        from pydantic_core import core_schema

        return core_schema.no_info_plain_validator_function(cls._parse)

    @classmethod
    def _parse(cls, v: Any) -> int:
        # bool is an int subclass; True is not a size
        if isinstance(v, int) and not isinstance(v, bool):
            if v < 0:
                raise ValueError(f"Byte size must not be negative: {v}")
            return int(v)
        if isinstance(v, str):
            match = _SIZE_PATTERN.match(v.strip().lower())
            if match:
                return int(float(match["number"]) * _SIZE_UNITS[match["unit"]])
        raise ValueError(f"Invalid byte size {v!r}: expected bytes or a size like '512kb', '5mb', '1gb'")


class ProcessorOptions(BaseModel):
    """
    Scheduling options for the request processor.

    Durations are in seconds. Setting ``timeout_before_throttle`` to 0
    disables latency-based throttling entirely.
    """

    max_concurrency: int = Field(10, ge=1, description="Maximum requests in flight at once")
    delay_between_request_start: float = Field(
        1.0,
        ge=0,
        description="Base delay applied before each request starts",
    )
    delay_jitter: float = Field(
        1.0,
        ge=0,
        description="Upper bound of the uniform random delay added to each request",
    )
    request_timeout: float = Field(20.0, gt=0, description="Timeout for a single request")
    timeout_before_throttle: float = Field(
        2.5,
        ge=0,
        description="Responses slower than this increase the backoff (0 = never throttle)",
    )
    throttling_request_backoff: float = Field(
        5.0,
        ge=0,
        description="Amount the backoff grows or shrinks by per adjustment",
    )
    min_sequential_successes_to_minimise_throttling: int = Field(
        5,
        ge=1,
        description="Consecutive fast responses required to reduce the backoff",
    )

    model_config = {"extra": "forbid"}


class NetworkConfig(BaseModel):
    """Configuration for the aiohttp transport."""

    user_agent: Optional[str] = Field(None, description="Custom User-Agent header")
    proxy: Optional[str] = Field(None, description="HTTP/HTTPS proxy URL")
    connect_timeout: float = Field(10.0, gt=0, description="Connection timeout in seconds")
    max_content_size: ByteSize = Field(
        50 * 1024 * 1024,
        description="Maximum response size (e.g., '200kb', '5mb')",
    )
    connection_limit: int = Field(100, ge=1, description="Total connection pool size")
    per_host_connection_limit: int = Field(10, ge=0, description="Connections per host (0 = unlimited)")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra headers sent with every request")

    model_config = {"extra": "forbid"}


class CrawlpaceConfig(BaseModel):
    """
    Root configuration model for crawlpace.

    YAML format:
        processor:
          max_concurrency: 4
          delay_between_request_start: 0.5
          timeout_before_throttle: 2.0
        network:
          user_agent: my-crawler/1.0
        log_level: DEBUG
    """

    processor: ProcessorOptions = Field(default_factory=ProcessorOptions)
    network: NetworkConfig = Field(default_factory=NetworkConfig)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "CrawlpaceConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "CrawlpaceConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text())
