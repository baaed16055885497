"""Main application entry point for the service metrics agent."""

import argparse
import signal
import sys
from typing import List, Optional

import yaml
from pydantic import ValidationError

from .collectors.command_runner import CommandRunner
from .config.loader import ConfigLoader
from .config.models import ServiceMetricsConfig, parse_duration
from .processor import CycleProcessor
from .scheduler import SchedulerLoop
from .sinks.base import MetricSinkError, create_sink
from .utils.logger import setup_logger


REQUIRED_FLAGS = (
    ("origin", "origin"),
    ("metron_addr", "metron-addr"),
    ("metrics_cmd", "metrics-cmd"),
)

CMD_ARG_FLAG = '--metrics-cmd-arg'


class ServiceMetricsApp:
    """
    Main agent application.

    Wires configuration, logging, the metric sink and the polling loop,
    and handles graceful shutdown on SIGTERM/SIGINT.
    """

    def __init__(self, config: ServiceMetricsConfig):
        """
        Initialize agent application.

        Args:
            config: Validated configuration

        Raises:
            MetricSinkError: If the metric sink cannot be initialized
        """
        self.config = config
        self.logger = setup_logger(level=config.log_level)

        try:
            self.sink = create_sink(config.metron_addr, config.origin, self.logger)
        except MetricSinkError as e:
            self.logger.error(
                "metric sink failed to initialize",
                extra={"event": "failed", "error": str(e), "address": config.metron_addr}
            )
            raise

        runner = CommandRunner(
            config.metrics_cmd,
            config.metrics_cmd_args,
            timeout=config.metrics_cmd_timeout,
            logger=self.logger
        )
        self.processor = CycleProcessor(runner, self.sink, self.logger)
        self.loop = SchedulerLoop(self.processor, config.metrics_interval, self.logger)

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(
            f"Received {signal_name}, initiating graceful shutdown",
            extra={"event": "stopping"}
        )
        self.loop.stop()
        # Unwinds start(), which shuts the scheduler down, and run(), which closes the sink.
        # A scheduled cycle's command finishes on the worker thread before exit; the
        # initial cycle runs on this thread, so subprocess.run kills its command.
        sys.exit(0)

    def run(self) -> int:
        """Run forever (until a stop condition or signal) and return the exit code."""
        self.install_signal_handlers()
        try:
            return self.loop.start()
        finally:
            self.sink.close()

    def run_once(self) -> int:
        """Run exactly one cycle and return its exit code (0 when it would continue)."""
        try:
            result = self.processor.process()
        finally:
            self.sink.close()
        return result.exit_code if result.should_stop else 0


def _duration_flag(flag: str):
    def parse(value: str):
        try:
            return parse_duration(value)
        except ValueError as e:
            raise argparse.ArgumentTypeError(
                f'invalid value "{value}" for flag -{flag}: {e}'
            )
    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='service-metrics',
        description='Run a metrics command periodically and forward its metrics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Emit metrics from a script every 30 seconds as JSON datagrams to a local UDP collector
  service-metrics --origin p-mysql --metron-addr localhost:3457 \\
      --metrics-cmd /var/vcap/jobs/mysql/bin/metrics --metrics-interval 30s

  # Pass arguments through to the metrics command, verbatim and in order
  service-metrics --origin redis --metron-addr localhost:3457 \\
      --metrics-cmd /bin/bash --metrics-cmd-arg -c --metrics-cmd-arg ./collect.sh

  # Load settings from a YAML file and run a single cycle
  service-metrics --config config/config.yaml --run-once
        """
    )

    parser.add_argument(
        '--origin',
        help='Required. Source name for metrics emitted by this process, e.g. service-name'
    )
    parser.add_argument(
        '--metron-addr',
        dest='metron_addr',
        help='Required. Sink address: host:port for JSON over UDP, e.g. localhost:2346 (or http(s)://, cloudwatch://region)'
    )
    parser.add_argument(
        '--metrics-cmd',
        dest='metrics_cmd',
        help='Required. Path to metrics command'
    )
    parser.add_argument(
        CMD_ARG_FLAG,
        dest='metrics_cmd_args',
        action='append',
        help='Argument to pass on to metrics-cmd (multi-valued)'
    )
    parser.add_argument(
        '--metrics-interval',
        dest='metrics_interval',
        type=_duration_flag('metrics-interval'),
        help='Interval to run metrics-cmd (default: 1m)'
    )
    parser.add_argument(
        '--metrics-cmd-timeout',
        dest='metrics_cmd_timeout',
        type=_duration_flag('metrics-cmd-timeout'),
        help='Kill metrics-cmd after this long (default: no timeout)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        default=None,
        help='Output debug logging'
    )
    parser.add_argument(
        '--config',
        help='Optional YAML configuration file; command-line flags take precedence'
    )
    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Run one metrics cycle and exit'
    )
    return parser


def fold_cmd_args(argv: List[str]) -> List[str]:
    """
    Attach every ``--metrics-cmd-arg`` value to its flag.

    argparse refuses option values that start with ``-``, so
    ``--metrics-cmd-arg -c`` is rewritten to ``--metrics-cmd-arg=-c``.
    The token after the flag is always taken as its value.
    """
    folded = []
    tokens = iter(argv)
    for token in tokens:
        if token == CMD_ARG_FLAG:
            value = next(tokens, None)
            if value is not None:
                folded.append(f"{CMD_ARG_FLAG}={value}")
                continue
        folded.append(token)
    return folded


def parse_args(parser: argparse.ArgumentParser, argv: Optional[List[str]] = None) -> argparse.Namespace:
    if argv is None:
        argv = sys.argv[1:]
    return parser.parse_args(fold_cmd_args(argv))


def load_config(args: argparse.Namespace, parser: argparse.ArgumentParser) -> ServiceMetricsConfig:
    """
    Resolve and validate configuration, exiting with status 1 on any problem.

    Runs before logging is set up, so problems are printed to stderr.
    """
    overrides = {
        "origin": args.origin,
        "metron_addr": args.metron_addr,
        "metrics_cmd": args.metrics_cmd,
        "metrics_cmd_args": args.metrics_cmd_args,
        "metrics_interval": args.metrics_interval,
        "metrics_cmd_timeout": args.metrics_cmd_timeout,
        "debug": args.debug,
    }

    try:
        values = ConfigLoader.merge(overrides, args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        sys.exit(1)

    for field, flag in REQUIRED_FLAGS:
        if not values.get(field):
            parser.print_usage(sys.stderr)
            print(f"\nMust provide --{flag}", file=sys.stderr)
            sys.exit(1)

    try:
        return ServiceMetricsConfig(**values)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)


def main(argv: Optional[List[str]] = None):
    """
    CLI entry point.

    Parses command-line arguments and starts the agent.
    """
    parser = build_parser()
    args = parse_args(parser, argv)
    config = load_config(args, parser)

    try:
        app = ServiceMetricsApp(config)
    except MetricSinkError:
        sys.exit(1)

    if args.run_once:
        sys.exit(app.run_once())

    sys.exit(app.run())


if __name__ == '__main__':
    main()
