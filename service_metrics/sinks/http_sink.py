"""HTTP sink posting value-metric envelopes to an ingestion endpoint."""

import logging

import httpx

from .base import MetricSink, MetricSinkError


class HttpSink(MetricSink):
    """POST one JSON envelope per metric to an HTTP(S) endpoint."""

    def __init__(
        self,
        url: str,
        origin: str,
        logger: logging.Logger = None,
        timeout_ms: int = 5000,
        transport: httpx.BaseTransport = None
    ):
        """
        Initialize HTTP sink.

        Args:
            url: Ingestion endpoint URL
            origin: Source name for emitted metrics
            logger: Optional logger instance
            timeout_ms: Per-request timeout in milliseconds
            transport: Optional httpx transport (used by tests)
        """
        super().__init__(origin, logger)
        if not url.startswith(('http://', 'https://')):
            raise MetricSinkError('URL must start with http:// or https://')

        self.url = url
        self.client = httpx.Client(timeout=timeout_ms / 1000.0, transport=transport)

    def send_value(self, key: str, value: float, unit: str) -> None:
        try:
            response = self.client.post(self.url, json=self.envelope(key, value, unit))
        except httpx.TimeoutException as e:
            raise MetricSinkError(f"Request timeout sending metric {key}") from e
        except httpx.RequestError as e:
            raise MetricSinkError(f"Request error sending metric {key}: {e}") from e

        if not response.is_success:
            raise MetricSinkError(f"HTTP {response.status_code} sending metric {key}")

    def close(self) -> None:
        self.client.close()
