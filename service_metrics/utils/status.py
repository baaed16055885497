"""Outcome and cycle status enumerations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# Reserved exit status a metrics command uses to say "nothing to report yet"
NOT_READY_EXIT_STATUS = 10


class OutcomeKind(Enum):
    """Classification of one metrics command invocation."""

    SUCCESS = "success"
    NOT_READY = "not_ready"
    FAILED = "failed"
    LAUNCH_FAILED = "launch_failed"


class CycleAction(Enum):
    """What the scheduler should do after a cycle."""

    CONTINUE = "continue"
    GRACEFUL_STOP = "graceful_stop"
    FATAL_STOP = "fatal_stop"


@dataclass(frozen=True)
class CycleResult:
    """Result of one polling cycle, handed back to the driver."""

    action: CycleAction
    exit_code: Optional[int] = None

    @classmethod
    def proceed(cls) -> "CycleResult":
        return cls(CycleAction.CONTINUE)

    @classmethod
    def graceful_stop(cls) -> "CycleResult":
        return cls(CycleAction.GRACEFUL_STOP, exit_code=0)

    @classmethod
    def fatal_stop(cls, exit_code: int = 1) -> "CycleResult":
        return cls(CycleAction.FATAL_STOP, exit_code=exit_code)

    @property
    def should_stop(self) -> bool:
        return self.action is not CycleAction.CONTINUE
