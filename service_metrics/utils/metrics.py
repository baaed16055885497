"""Metric data structures and payload decoding."""

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .status import OutcomeKind


class MetricsParseError(ValueError):
    """Raised when metrics command output is not a valid metric payload."""

    def __init__(self, reason: str, errors: Optional[list] = None):
        super().__init__(reason)
        self.reason = reason
        self.errors = errors or []


class Metric(BaseModel):
    """One (key, value, unit) observation produced by the metrics command."""

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    key: str = Field(min_length=1)
    value: float  # JSON integers are widened, booleans rejected
    unit: str


_PAYLOAD_ADAPTER = TypeAdapter(List[Metric])


def parse_metrics(output: bytes) -> List[Metric]:
    """
    Decode a metric payload from raw command output.

    The payload must be a JSON array of objects carrying exactly
    ``key`` (non-empty string), ``value`` (number) and ``unit`` (string).
    Order is preserved; an empty array is valid.

    Args:
        output: Raw combined stdout/stderr of the metrics command

    Returns:
        List[Metric]: Parsed metrics in source order

    Raises:
        MetricsParseError: If the output is not valid JSON or does not match the schema
    """
    try:
        return _PAYLOAD_ADAPTER.validate_json(output)
    except ValidationError as e:
        errors = e.errors(include_url=False)
        raise MetricsParseError(_format_errors(errors), errors) from e


def _format_errors(errors: list) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid metrics payload"


@dataclass(frozen=True)
class CommandOutcome:
    """Classified result of one metrics command invocation."""

    kind: OutcomeKind
    output: bytes = b""
    returncode: Optional[int] = None
    error: Optional[str] = None

    @property
    def text(self) -> str:
        """Output decoded for logging."""
        return self.output.decode("utf-8", errors="replace")
