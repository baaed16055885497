"""Metrics command runner with exit status classification."""

import logging
import signal
import subprocess
from datetime import timedelta
from typing import Optional, Sequence

from ..utils.metrics import CommandOutcome
from ..utils.status import NOT_READY_EXIT_STATUS, OutcomeKind


class CommandRunner:
    """
    Run the configured metrics command and classify how it ended.

    Stdout and stderr are captured as one interleaved byte stream. The
    call blocks until the command exits (or the optional timeout fires).
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        timeout: Optional[timedelta] = None,
        logger: logging.Logger = None
    ):
        """
        Initialize command runner.

        Args:
            command: Path to the metrics command
            args: Arguments passed verbatim, in order, on every invocation
            timeout: Optional maximum run time; None waits forever
            logger: Optional logger instance
        """
        self.command = command
        self.args = tuple(args)
        self.timeout = timeout
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    @property
    def argv(self) -> list:
        return [self.command, *self.args]

    def run(self) -> CommandOutcome:
        """
        Execute the metrics command once.

        Returns:
            CommandOutcome: LAUNCH_FAILED if the command could not be started,
            otherwise the classification of its exit status
        """
        self.logger.debug("running metrics command", extra={"argv": self.argv})
        timeout = self.timeout.total_seconds() if self.timeout is not None else None

        try:
            completed = subprocess.run(
                self.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=timeout,
                check=False
            )
        except subprocess.TimeoutExpired as e:
            return CommandOutcome(
                kind=OutcomeKind.FAILED,
                output=e.output or b"",
                error=f"timed out after {timeout:g}s"
            )
        except OSError as e:
            # Not found, permission denied, exec format error
            return CommandOutcome(kind=OutcomeKind.LAUNCH_FAILED, error=str(e))

        outcome = self.classify(completed.returncode, completed.stdout or b"")
        self.logger.debug(
            "metrics command exited",
            extra={"returncode": completed.returncode, "outcome": outcome.kind.value}
        )
        return outcome

    @staticmethod
    def classify(returncode: int, output: bytes) -> CommandOutcome:
        """
        Map a process exit status to an outcome.

        Args:
            returncode: Process return code (negative when killed by a signal)
            output: Captured output

        Returns:
            CommandOutcome: SUCCESS for 0, NOT_READY for the sentinel status,
            FAILED for anything else
        """
        if returncode == 0:
            return CommandOutcome(kind=OutcomeKind.SUCCESS, output=output, returncode=0)

        if returncode == NOT_READY_EXIT_STATUS:
            return CommandOutcome(
                kind=OutcomeKind.NOT_READY,
                output=output,
                returncode=returncode
            )

        return CommandOutcome(
            kind=OutcomeKind.FAILED,
            output=output,
            returncode=returncode,
            error=_describe_exit(returncode)
        )


def _describe_exit(returncode: int) -> str:
    if returncode < 0:
        try:
            return f"signal: {signal.Signals(-returncode).name}"
        except ValueError:
            return f"signal: {-returncode}"
    return f"exit status {returncode}"
