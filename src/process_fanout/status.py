from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class StatusCode(IntEnum):
    """Controller-level status codes OR-folded into the run status.

    Example:
        ```python
        code = StatusCode.SYS_ERROR
        ```
    """

    SUCCESS = 0
    ARG_ERROR = 1
    MEM_ERROR = 2
    SYS_ERROR = 3
    IO_ERROR = 4
    OTHER_ERROR = 5


@dataclass(slots=True)
class AggregateStatus:
    """Accumulator holding the OR of every child and controller code.

    Example:
        ```python
        status = AggregateStatus()
        status.fold(5)
        ```
    """

    value: int = 0

    def fold(self, code: int) -> int:
        """OR one outcome or error code into the aggregate and return it.

        Example:
            ```python
            AggregateStatus().fold(StatusCode.IO_ERROR)
            ```
        """
        self.value |= int(code)
        return self.value

    @property
    def ok(self) -> bool:
        """Return True only when nothing non-zero has been folded in.

        Example:
            ```python
            assert AggregateStatus().ok
            ```
        """
        return self.value == 0
