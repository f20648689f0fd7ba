from __future__ import annotations

from datetime import datetime
from typing import Sequence, TextIO

from .execution.types import TerminationOutcome

BANNER_WIDTH = 70
TIMESTAMP_FORMAT = "%Y-%m-%d:%H:%M:%S"


def write_line(stream: TextIO, line: str) -> None:
    """Write one line and flush, keeping surrogate-escaped record bytes intact.

    Records are decoded with `surrogateescape`, so argv text may hold lone
    surrogates. On streams with a binary buffer those are written back as
    the original bytes; other streams take the text unchanged.

    Example:
        ```python
        write_line(sys.stdout, launch_line(4242, ["/bin/echo", "a"]))
        ```
    """
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        stream.write(line + "\n")
        stream.flush()
        return
    stream.flush()
    buffer.write((line + "\n").encode("utf-8", "surrogateescape"))
    buffer.flush()


def timestamp(now: datetime | None = None) -> str:
    """Format local time as YYYY-MM-DD:HH:MM:SS.

    Example:
        ```python
        stamp = timestamp(datetime(2024, 1, 2, 3, 4, 5))
        assert stamp == "2024-01-02:03:04:05"
        ```
    """
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def launch_line(pid: int, argv: Sequence[str], now: datetime | None = None) -> str:
    """Return the one-line announcement written when a child is spawned.

    Example:
        ```python
        line = launch_line(4242, ["/bin/echo", "a"])
        ```
    """
    return f"{timestamp(now)} Spawned child {pid}, program: {' '.join(argv)}"


def termination_line(pid: int, outcome: TerminationOutcome, now: datetime | None = None) -> str:
    """Return the one-line record of how a reaped child ended.

    Example:
        ```python
        line = termination_line(4242, TerminationOutcome.exited(0))
        ```
    """
    if outcome.kind == "exited":
        detail = f"exited with status {outcome.value}"
    elif outcome.kind == "signaled":
        detail = f"terminated due to signal {outcome.value}"
    else:
        detail = "terminated for an unknown reason"
    return f"{timestamp(now)} child {pid} {detail}"


def banner(title: str) -> list[str]:
    """Return the three framing lines around a centred title.

    Example:
        ```python
        top, middle, bottom = banner("Stdout from child 42")
        ```
    """
    rule = "*" * BANNER_WIDTH
    return [rule, f" {title} ".center(BANNER_WIDTH, "*"), rule]


def final_line(status: int) -> str:
    """Return the closing line reporting the combined run status.

    Example:
        ```python
        assert final_line(0) == "Exiting with status 0"
        ```
    """
    return f"Exiting with status {status}"
