"""Pydantic configuration models for the service metrics agent."""

from datetime import timedelta
from typing import Optional, Tuple
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Go-style duration units, e.g. "10ms", "1m30s", "1.5h"
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)')
_PLAIN_NUMBER = re.compile(r'\d+(?:\.\d*)?|\.\d+')


def parse_duration(value) -> timedelta:
    """
    Parse a duration string such as ``"10ms"`` or ``"1h30m"``.

    Plain numbers (int, float or numeric strings) are taken as seconds.

    Args:
        value: Duration string, number of seconds or timedelta

    Returns:
        timedelta: Parsed duration

    Raises:
        ValueError: If the value is not a valid duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = str(value).strip()
    if not text:
        raise ValueError("invalid duration ''")

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if not text:
        raise ValueError(f"invalid duration {str(value)!r}")

    if _PLAIN_NUMBER.fullmatch(text):
        return timedelta(seconds=sign * float(text))

    seconds = 0.0
    position = 0
    while position < len(text):
        match = _DURATION_PART.match(text, position)
        if match is None:
            raise ValueError(f"invalid duration {str(value)!r}")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    return timedelta(seconds=sign * seconds)


class ServiceMetricsConfig(BaseModel):
    """Resolved agent configuration, immutable after startup."""

    model_config = ConfigDict(frozen=True)

    origin: str = Field(min_length=1)
    metron_addr: str = Field(min_length=1)
    metrics_cmd: str = Field(min_length=1)
    metrics_cmd_args: Tuple[str, ...] = ()
    metrics_interval: timedelta = timedelta(minutes=1)
    metrics_cmd_timeout: Optional[timedelta] = None  # None waits forever
    debug: bool = False

    @field_validator('metrics_interval', 'metrics_cmd_timeout', mode='before')
    @classmethod
    def validate_duration(cls, v):
        """Accept Go-style duration strings and plain seconds."""
        if v is None:
            return v
        return parse_duration(v)

    @field_validator('metrics_interval', 'metrics_cmd_timeout')
    @classmethod
    def validate_positive(cls, v: Optional[timedelta]) -> Optional[timedelta]:
        """Durations must be greater than zero."""
        if v is not None and v <= timedelta(0):
            raise ValueError('duration must be greater than zero')
        return v

    @field_validator('metrics_cmd_args', mode='before')
    @classmethod
    def validate_args(cls, v):
        """Coerce scalar YAML values to strings so arguments pass verbatim."""
        if v is None:
            return ()
        if isinstance(v, str):
            raise ValueError('metrics_cmd_args must be a list of strings')
        return tuple(str(item) for item in v)

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.debug else "INFO"
