"""UDP sink emitting JSON value-metric envelopes, one datagram per metric."""

import json
import logging
import socket
from typing import Tuple

from .base import MetricSink, MetricSinkError


class UdpSink(MetricSink):
    """
    Fire-and-forget UDP sink.

    Each metric becomes one datagram holding a JSON value-metric envelope.
    The fields mirror the dropsonde ValueMetric envelope, but the encoding
    is JSON, not protobuf: the receiver must be a JSON-aware UDP collector.
    Delivery is not acknowledged; only local send errors are reported.
    """

    def __init__(self, address: str, origin: str, logger: logging.Logger = None):
        """
        Initialize UDP sink.

        Args:
            address: ``host:port`` or ``udp://host:port``
            origin: Source name for emitted metrics
            logger: Optional logger instance

        Raises:
            MetricSinkError: If the address is malformed or cannot be resolved
        """
        super().__init__(origin, logger)
        host, port = self.split_address(address)

        try:
            family, _, _, _, sockaddr = socket.getaddrinfo(
                host, port, type=socket.SOCK_DGRAM
            )[0]
        except socket.gaierror as e:
            raise MetricSinkError(f"Cannot resolve UDP sink address {address}: {e}") from e

        self.address = sockaddr
        self.sock = socket.socket(family, socket.SOCK_DGRAM)
        self.logger.debug(f"UDP sink ready for {host}:{port}")

    @staticmethod
    def split_address(address: str) -> Tuple[str, int]:
        """
        Split ``host:port`` into its parts.

        Raises:
            MetricSinkError: If the port is missing or not a valid number
        """
        if address.lower().startswith("udp://"):
            address = address[len("udp://"):]

        host, sep, port = address.rpartition(":")
        if not sep or not port.isdigit() or not 0 < int(port) < 65536:
            raise MetricSinkError(f"Invalid UDP sink address, expected host:port: {address}")

        host = host.strip("[]") or "localhost"
        return host, int(port)

    def send_value(self, key: str, value: float, unit: str) -> None:
        payload = json.dumps(self.envelope(key, value, unit)).encode("utf-8")
        try:
            self.sock.sendto(payload, self.address)
        except OSError as e:
            raise MetricSinkError(f"Failed to send metric {key}: {e}") from e

    def close(self) -> None:
        self.sock.close()
