from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Literal

from ..status import StatusCode

if TYPE_CHECKING:
    from .capture import CapturePair

OutcomeKind = Literal["exited", "signaled", "unknown"]


class SlotState(str, Enum):
    """Lifecycle position of one pool slot.

    Example:
        ```python
        state = SlotState.IDLE
        ```
    """

    IDLE = "idle"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    REAPED = "reaped"


@dataclass(slots=True)
class Slot:
    """One fixed concurrent execution position in the pool.

    Example:
        ```python
        slot = Slot(index=0)
        ```
    """

    index: int
    state: SlotState = SlotState.IDLE
    pid: int | None = None
    process: subprocess.Popen[bytes] | None = None
    captures: CapturePair | None = None

    def clear(self) -> None:
        """Forget the child and its captures and return to IDLE.

        Example:
            ```python
            slot.clear()
            ```
        """
        self.state = SlotState.IDLE
        self.pid = None
        self.process = None
        self.captures = None


@dataclass(frozen=True, slots=True)
class TerminationOutcome:
    """Classified result of one child ending.

    Example:
        ```python
        outcome = TerminationOutcome.signaled(9)
        assert outcome.code == 9
        ```
    """

    kind: OutcomeKind
    value: int = 0

    @classmethod
    def exited(cls, code: int) -> "TerminationOutcome":
        """Build a normal-exit outcome.

        Example:
            ```python
            ok = TerminationOutcome.exited(0)
            ```
        """
        return cls("exited", code)

    @classmethod
    def signaled(cls, signal_number: int) -> "TerminationOutcome":
        """Build a killed-by-signal outcome.

        Example:
            ```python
            killed = TerminationOutcome.signaled(15)
            ```
        """
        return cls("signaled", signal_number)

    @classmethod
    def unknown(cls) -> "TerminationOutcome":
        """Build an unclassifiable outcome.

        Example:
            ```python
            odd = TerminationOutcome.unknown()
            ```
        """
        return cls("unknown", 0)

    @property
    def code(self) -> int:
        """Return the status code this outcome contributes to the aggregate.

        Example:
            ```python
            assert TerminationOutcome.unknown().code == StatusCode.OTHER_ERROR
            ```
        """
        if self.kind == "unknown":
            return int(StatusCode.OTHER_ERROR)
        return self.value

    @property
    def returncode(self) -> int:
        """Return the value in `subprocess.Popen.returncode` convention.

        Example:
            ```python
            assert TerminationOutcome.signaled(9).returncode == -9
            ```
        """
        if self.kind == "exited":
            return self.value
        if self.kind == "signaled":
            return -self.value
        return -1


def classify_wait_status(raw_status: int) -> TerminationOutcome:
    """Classify a raw wait status as exited, signaled, or unknown.

    Example:
        ```python
        pid, raw = os.wait()
        outcome = classify_wait_status(raw)
        ```
    """
    if os.WIFEXITED(raw_status):
        return TerminationOutcome.exited(os.WEXITSTATUS(raw_status))
    if os.WIFSIGNALED(raw_status):
        return TerminationOutcome.signaled(os.WTERMSIG(raw_status))
    return TerminationOutcome.unknown()


@dataclass(frozen=True, slots=True)
class ReapResult:
    """Slot index, pid, and outcome of one reaped child.

    Example:
        ```python
        result = ReapResult(index=0, pid=4242, outcome=TerminationOutcome.exited(0))
        ```
    """

    index: int
    pid: int
    outcome: TerminationOutcome
