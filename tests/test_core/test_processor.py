"""Tests for CycleProcessor."""

import logging
from unittest.mock import patch

import pytest

from service_metrics.collectors.command_runner import CommandRunner
from service_metrics.processor import (
    EXECUTE_ACTION,
    LAUNCH_FAILED_OUTPUT,
    PARSE_ACTION,
    SEND_ACTION,
    CycleProcessor,
)
from service_metrics.utils.metrics import CommandOutcome
from service_metrics.utils.status import CycleAction, CycleResult, OutcomeKind


def records(caplog, message=None, level=None):
    return [
        r for r in caplog.records
        if (message is None or r.getMessage() == message)
        and (level is None or r.levelno == level)
    ]


@pytest.fixture
def process(make_runner, sink, logger):
    """Run one cycle for a given outcome and return (result, runner)."""
    def _process(kind, output=b"", returncode=None, error=None, cycle_sink=None):
        runner = make_runner(CommandOutcome(kind=kind, output=output, returncode=returncode, error=error))
        processor = CycleProcessor(runner, cycle_sink or sink, logger)
        return processor.process(), runner
    return _process


class TestSuccess:
    """Cycles where the command exits 0."""

    def test_forwards_example_payload_in_order(self, process, sink, metrics_json):
        """Test the two documented metrics reach the sink in order."""
        result, runner = process(OutcomeKind.SUCCESS, metrics_json.encode(), 0)

        assert result == CycleResult.proceed()
        assert runner.calls == 1
        assert sink.calls == [
            ("loadMetric", 4.0, "Load"),
            ("temperatureMetric", 99.0, "Temperature"),
        ]

    @pytest.mark.parametrize("output,expected", [
        (b"[]", []),
        (b'[{"key":"a","value":1,"unit":"x"}]', [("a", 1.0, "x")]),
        (
            b'[{"key":"a","value":1,"unit":"x"},{"key":"a","value":1,"unit":"x"},'
            b'{"key":"b","value":-2.5,"unit":""}]',
            [("a", 1.0, "x"), ("a", 1.0, "x"), ("b", -2.5, "")],
        ),
    ])
    def test_one_sink_call_per_record(self, process, sink, output, expected):
        """Test sink calls match the payload one-to-one and in order."""
        result, _ = process(OutcomeKind.SUCCESS, output, 0)

        assert result.action == CycleAction.CONTINUE
        assert sink.calls == expected

    def test_logs_starting_and_done(self, process, caplog, metrics_json):
        process(OutcomeKind.SUCCESS, metrics_json.encode(), 0)

        events = [r.event for r in records(caplog, EXECUTE_ACTION, logging.INFO)]
        assert events == ["starting", "done"]

    def test_sink_failure_does_not_stop_forwarding(self, process, make_sink, caplog, metrics_json):
        """Test a rejected metric is logged and the rest are still sent."""
        failing_sink = make_sink(fail_keys={"loadMetric"})

        result, _ = process(OutcomeKind.SUCCESS, metrics_json.encode(), 0, cycle_sink=failing_sink)

        assert result.action == CycleAction.CONTINUE
        assert [call[0] for call in failing_sink.calls] == ["loadMetric", "temperatureMetric"]

        errors = records(caplog, SEND_ACTION, logging.ERROR)
        assert len(errors) == 1
        assert getattr(errors[0], "metric.key") == "loadMetric"
        assert getattr(errors[0], "metric.value") == 4.0
        assert getattr(errors[0], "metric.unit") == "Load"
        assert "rejected loadMetric" in errors[0].error

    def test_unexpected_sink_exception_is_contained(self, process, make_sink, metrics_json):
        """Test any exception from the sink is treated as a per-metric failure."""
        class ExplodingSink(make_sink):
            def send_value(self, key, value, unit):
                super().send_value(key, value, unit)
                raise RuntimeError("boom")

        exploding = ExplodingSink()

        result, _ = process(OutcomeKind.SUCCESS, metrics_json.encode(), 0, cycle_sink=exploding)

        assert result.action == CycleAction.CONTINUE
        assert len(exploding.calls) == 2


class TestParseFailure:
    """Cycles where the command exits 0 with a bad payload."""

    def test_invalid_json_is_fatal(self, process, sink, caplog):
        """Test malformed output stops the process with a non-zero code."""
        result, _ = process(OutcomeKind.SUCCESS, b"invalid", 0)

        assert result.action == CycleAction.FATAL_STOP
        assert result.exit_code == 1
        assert sink.calls == []

        errors = records(caplog, PARSE_ACTION, logging.ERROR)
        assert len(errors) == 1
        assert errors[0].event == "failed"
        assert errors[0].output == "invalid"
        assert errors[0].error

    def test_schema_violation_is_fatal(self, process, sink):
        result, _ = process(OutcomeKind.SUCCESS, b'[{"key":"a","value":"4","unit":"u"}]', 0)

        assert result == CycleResult.fatal_stop(1)
        assert sink.calls == []


class TestNotReady:
    """Cycles where the command exits with the not-ready status."""

    @pytest.mark.parametrize("output", [
        b"failed to obtain metrics",
        b'[{"key":"a","value":1,"unit":"u"}]',
        b"",
    ])
    def test_never_parses_or_forwards(self, process, sink, output):
        """Test nothing is parsed or sent regardless of output."""
        with patch("service_metrics.processor.parse_metrics") as mock_parse:
            result, _ = process(OutcomeKind.NOT_READY, output, 10)

        assert result.action == CycleAction.CONTINUE
        assert not result.should_stop
        mock_parse.assert_not_called()
        assert sink.calls == []

    def test_logs_output_at_info(self, process, caplog):
        process(OutcomeKind.NOT_READY, b"failed to obtain metrics", 10)

        infos = records(caplog, EXECUTE_ACTION, logging.INFO)
        assert infos[-1].event == "not yet ready to emit metrics"
        assert infos[-1].output == "failed to obtain metrics"
        assert records(caplog, level=logging.ERROR) == []


class TestCommandFailure:
    """Cycles where the command exits with another non-zero status."""

    def test_graceful_stop_with_zero_exit(self, process, sink):
        """Test failure ends the process gracefully with status 0."""
        with patch("service_metrics.processor.parse_metrics") as mock_parse:
            result, _ = process(OutcomeKind.FAILED, b"failed to obtain metrics", 1, "exit status 1")

        assert result.action == CycleAction.GRACEFUL_STOP
        assert result.exit_code == 0
        mock_parse.assert_not_called()
        assert sink.calls == []

    def test_logs_exactly_one_error(self, process, caplog):
        process(OutcomeKind.FAILED, b"failed to obtain metrics", 1, "exit status 1")

        errors = records(caplog, level=logging.ERROR)
        assert len(errors) == 1
        assert errors[0].getMessage() == EXECUTE_ACTION
        assert errors[0].event == "failed"
        assert errors[0].output == "failed to obtain metrics"
        assert errors[0].error == "exit status 1"


class TestLaunchFailure:
    """Cycles where the command cannot be started."""

    def test_fatal_stop_without_parsing(self, process, sink):
        """Test an unstartable command stops the process with status 1."""
        with patch("service_metrics.processor.parse_metrics") as mock_parse:
            result, _ = process(
                OutcomeKind.LAUNCH_FAILED,
                error="[Errno 2] No such file or directory: '/your/system/wont/have/this/yet'"
            )

        assert result == CycleResult.fatal_stop(1)
        mock_parse.assert_not_called()
        assert sink.calls == []

    def test_logs_configuration_hint(self, process, caplog):
        process(OutcomeKind.LAUNCH_FAILED, error="[Errno 13] Permission denied")

        errors = records(caplog, EXECUTE_ACTION, logging.ERROR)
        assert len(errors) == 1
        assert errors[0].output == LAUNCH_FAILED_OUTPUT
        assert errors[0].error == "[Errno 13] Permission denied"


class TestWithRealCommand:
    """Cycles running real shell commands."""

    def test_end_to_end_forwarding(self, write_script, sink, logger, metrics_json):
        script = write_script(f"printf '%s' '{metrics_json}'")
        processor = CycleProcessor(CommandRunner(script, logger=logger), sink, logger)

        assert processor.process().action == CycleAction.CONTINUE
        assert sink.calls == [
            ("loadMetric", 4.0, "Load"),
            ("temperatureMetric", 99.0, "Temperature"),
        ]

    def test_missing_command_is_fatal(self, tmp_path, sink, logger):
        runner = CommandRunner(str(tmp_path / "missing"), logger=logger)

        assert CycleProcessor(runner, sink, logger).process() == CycleResult.fatal_stop(1)
