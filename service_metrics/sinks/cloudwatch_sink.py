"""CloudWatch sink publishing metric values with put_metric_data."""

from datetime import datetime, timezone
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .base import MetricSink, MetricSinkError


# Units accepted by the CloudWatch API; anything else is sent as a dimension
CLOUDWATCH_UNITS = frozenset([
    "Seconds", "Microseconds", "Milliseconds",
    "Bytes", "Kilobytes", "Megabytes", "Gigabytes", "Terabytes",
    "Bits", "Kilobits", "Megabits", "Gigabits", "Terabits",
    "Percent", "Count",
    "Bytes/Second", "Kilobytes/Second", "Megabytes/Second",
    "Gigabytes/Second", "Terabytes/Second",
    "Bits/Second", "Kilobits/Second", "Megabits/Second",
    "Gigabits/Second", "Terabits/Second",
    "Count/Second", "None",
])


class CloudWatchSink(MetricSink):
    """Publish each metric to CloudWatch under the origin as namespace."""

    def __init__(
        self,
        origin: str,
        region: str = None,
        logger: logging.Logger = None,
        client=None
    ):
        """
        Initialize CloudWatch sink.

        Args:
            origin: Source name, used as the CloudWatch namespace
            region: AWS region (default resolved by boto3)
            logger: Optional logger instance
            client: Optional preconfigured boto3 CloudWatch client
        """
        super().__init__(origin, logger)
        self.region = region

        if client is not None:
            self.client = client
        else:
            try:
                self.client = boto3.client('cloudwatch', region_name=region)
            except BotoCoreError as e:
                raise MetricSinkError(f"Failed to create CloudWatch client: {e}") from e

    @staticmethod
    def metric_datum(key: str, value: float, unit: str) -> dict:
        """Build one MetricData entry, mapping free-form units to a dimension."""
        datum = {
            'MetricName': key,
            'Value': value,
            'Timestamp': datetime.now(timezone.utc),
        }
        if unit in CLOUDWATCH_UNITS:
            datum['Unit'] = unit
        else:
            datum['Unit'] = 'None'
            if unit:
                datum['Dimensions'] = [{'Name': 'unit', 'Value': unit}]
        return datum

    def send_value(self, key: str, value: float, unit: str) -> None:
        try:
            self.client.put_metric_data(
                Namespace=self.origin,
                MetricData=[self.metric_datum(key, value, unit)]
            )
        except (BotoCoreError, ClientError) as e:
            raise MetricSinkError(f"CloudWatch rejected metric {key}: {e}") from e
