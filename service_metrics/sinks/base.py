"""Metric sink interface and address-based factory."""

from abc import ABC, abstractmethod
from typing import Any, Dict
from urllib.parse import urlparse
import logging
import time


class MetricSinkError(Exception):
    """Raised when a sink cannot be initialized or a metric cannot be delivered."""


class MetricSink(ABC):
    """Abstract base class for telemetry destinations."""

    def __init__(self, origin: str, logger: logging.Logger = None):
        """
        Initialize base sink.

        Args:
            origin: Source name stamped on every emitted metric
            logger: Optional logger instance
        """
        self.origin = origin
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    @abstractmethod
    def send_value(self, key: str, value: float, unit: str) -> None:
        """
        Deliver one metric value.

        Args:
            key: Metric name
            value: Metric value
            unit: Free-form unit label

        Raises:
            MetricSinkError: If the metric could not be handed to the transport
        """
        pass

    def close(self) -> None:
        """Release transport resources."""

    def envelope(self, key: str, value: float, unit: str) -> Dict[str, Any]:
        """Build the value-metric envelope shared by the JSON transports."""
        return {
            "origin": self.origin,
            "eventType": "ValueMetric",
            "timestamp": time.time_ns(),
            "valueMetric": {
                "name": key,
                "value": value,
                "unit": unit,
            },
        }


def create_sink(address: str, origin: str, logger: logging.Logger = None) -> MetricSink:
    """
    Create the sink matching a destination address.

    ``http://`` and ``https://`` URLs post JSON envelopes, ``cloudwatch://[region]``
    publishes to CloudWatch, and anything else (``host:port`` or
    ``udp://host:port``) sends JSON datagrams over UDP.

    Args:
        address: Destination address
        origin: Source name for emitted metrics
        logger: Optional logger instance

    Returns:
        MetricSink: Initialized sink

    Raises:
        MetricSinkError: If the address is invalid or the sink cannot initialize
    """
    scheme = urlparse(address).scheme.lower() if "://" in address else ""

    if scheme in ("http", "https"):
        from .http_sink import HttpSink
        return HttpSink(address, origin, logger)

    if scheme == "cloudwatch":
        from .cloudwatch_sink import CloudWatchSink
        region = urlparse(address).netloc or None
        return CloudWatchSink(origin, region=region, logger=logger)

    if scheme in ("", "udp"):
        from .udp_sink import UdpSink
        return UdpSink(address, origin, logger)

    raise MetricSinkError(f"Unsupported sink address scheme: {scheme}")
