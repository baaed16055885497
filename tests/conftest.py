"""Shared pytest configuration and fixtures."""

import logging
import os
import stat
import textwrap
from pathlib import Path

import pytest

from service_metrics.sinks.base import MetricSink, MetricSinkError
from service_metrics.utils.metrics import CommandOutcome


PROJECT_ROOT = Path(__file__).parent.parent

METRICS_JSON = (
    '[{"key":"loadMetric","value":4,"unit":"Load"},'
    '{"key":"temperatureMetric","value":99,"unit":"Temperature"}]'
)


class RecordingSink(MetricSink):
    """Sink that records every call and can be told to reject some keys."""

    def __init__(self, fail_keys=(), origin="test-origin"):
        super().__init__(origin)
        self.calls = []
        self.fail_keys = set(fail_keys)
        self.closed = False

    def send_value(self, key, value, unit):
        self.calls.append((key, value, unit))
        if key in self.fail_keys:
            raise MetricSinkError(f"rejected {key}")

    def close(self):
        self.closed = True


class StubRunner:
    """Command runner returning a fixed outcome."""

    def __init__(self, outcome: CommandOutcome):
        self.outcome = outcome
        self.calls = 0

    def run(self) -> CommandOutcome:
        self.calls += 1
        return self.outcome


@pytest.fixture
def logger(caplog):
    """Logger that propagates to caplog at DEBUG level."""
    caplog.set_level(logging.DEBUG)
    test_logger = logging.getLogger("service-metrics-test")
    test_logger.handlers = []
    test_logger.setLevel(logging.DEBUG)
    test_logger.propagate = True
    return test_logger


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def write_script(tmp_path):
    """Create an executable shell script in tmp_path and return its path."""
    def _write(body: str, name: str = "metrics-cmd") -> str:
        script = tmp_path / name
        script.write_text("#!/bin/sh\n" + textwrap.dedent(body).strip() + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)
    return _write


@pytest.fixture
def subprocess_env():
    """Environment that lets a child interpreter import the package."""
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        filter(None, [str(PROJECT_ROOT), env.get("PYTHONPATH")])
    )
    return env


@pytest.fixture
def make_sink():
    """Factory for RecordingSink instances."""
    return RecordingSink


@pytest.fixture
def make_runner():
    """Factory for StubRunner instances."""
    return StubRunner


@pytest.fixture
def metrics_json():
    return METRICS_JSON


@pytest.fixture
def project_root():
    return PROJECT_ROOT
