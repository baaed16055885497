"""One polling cycle: run the metrics command, parse its output, forward metrics."""

import logging
from typing import List

from .collectors.command_runner import CommandRunner
from .sinks.base import MetricSink
from .utils.metrics import CommandOutcome, Metric, MetricsParseError, parse_metrics
from .utils.status import CycleResult, OutcomeKind


EXECUTE_ACTION = "executing-metrics-cmd"
PARSE_ACTION = "parsing-metrics-output"
SEND_ACTION = "sending metric value failed"

LAUNCH_FAILED_OUTPUT = "no metrics command has been configured, cannot collect metrics"


class CycleProcessor:
    """
    Execute one polling cycle.

    The processor never exits the process itself. It returns a
    CycleResult and leaves termination to the driver:

    - command could not be started: FATAL_STOP (exit 1)
    - command exited with the not-ready status: CONTINUE, nothing forwarded
    - command exited with any other non-zero status: GRACEFUL_STOP (exit 0)
    - output is not a valid payload: FATAL_STOP (exit 1)
    - otherwise every metric is forwarded and the result is CONTINUE
    """

    def __init__(self, runner: CommandRunner, sink: MetricSink, logger: logging.Logger):
        self.runner = runner
        self.sink = sink
        self.logger = logger

    def process(self) -> CycleResult:
        self.logger.info(EXECUTE_ACTION, extra={"event": "starting"})

        outcome = self.runner.run()

        if outcome.kind is OutcomeKind.LAUNCH_FAILED:
            self.logger.error(EXECUTE_ACTION, extra={
                "event": "failed",
                "error": outcome.error,
                "output": LAUNCH_FAILED_OUTPUT,
            })
            return CycleResult.fatal_stop(1)

        if outcome.kind is OutcomeKind.NOT_READY:
            self.logger.info(EXECUTE_ACTION, extra={
                "event": "not yet ready to emit metrics",
                "output": outcome.text,
            })
            return CycleResult.proceed()

        if outcome.kind is OutcomeKind.FAILED:
            self.logger.error(EXECUTE_ACTION, extra={
                "event": "failed",
                "error": outcome.error,
                "output": outcome.text,
            })
            return CycleResult.graceful_stop()

        self.logger.info(EXECUTE_ACTION, extra={"event": "done"})

        return self._parse_and_forward(outcome)

    def _parse_and_forward(self, outcome: CommandOutcome) -> CycleResult:
        try:
            metrics = parse_metrics(outcome.output)
        except MetricsParseError as e:
            self.logger.error(PARSE_ACTION, extra={
                "event": "failed",
                "error": e.reason,
                "output": outcome.text,
            })
            return CycleResult.fatal_stop(1)

        failed = self.forward(metrics)
        self.logger.debug(EXECUTE_ACTION, extra={
            "event": "forwarded",
            "metrics": len(metrics) - failed,
            "failed": failed,
        })
        return CycleResult.proceed()

    def forward(self, metrics: List[Metric]) -> int:
        """
        Send every metric to the sink, in order.

        A failure on one metric is logged and does not stop the rest.

        Returns:
            int: Number of metrics the sink rejected
        """
        failed = 0
        for metric in metrics:
            try:
                self.sink.send_value(metric.key, metric.value, metric.unit)
            except Exception as e:
                failed += 1
                self.logger.error(SEND_ACTION, extra={
                    "event": "failed",
                    "error": str(e),
                    "metric.key": metric.key,
                    "metric.value": metric.value,
                    "metric.unit": metric.unit,
                })
        return failed
