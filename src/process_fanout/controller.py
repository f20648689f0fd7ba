from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, TextIO

from .errors import LaunchError, OutputError
from .execution.launcher import ProcessLauncher
from .execution.reaper import CompletionReaper, Waiter
from .execution.serializer import OutputSerializer
from .execution.slot_pool import SlotPool
from .execution.types import ReapResult
from .records import build_argv, iter_records
from .reporting import final_line, write_line
from .settings import ControllerSettings
from .status import AggregateStatus, StatusCode

logger = logging.getLogger(__name__)


class ControllerState(str, Enum):
    """Phases of one controller run.

    Example:
        ```python
        state = ControllerState.FILLING
        ```
    """

    FILLING = "filling"
    DRAINING = "draining"
    DONE = "done"


@dataclass(slots=True)
class ControllerResult:
    """Aggregate status and bookkeeping of a finished run.

    Example:
        ```python
        result = ControllerResult(status=0)
        ```
    """

    status: int
    launched: int = 0
    launch_failures: int = 0
    reaped: list[ReapResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return True when every child exited 0 and nothing else failed.

        Example:
            ```python
            assert ControllerResult(status=0).ok
            ```
        """
        return self.status == 0


class ControllerLoop:
    """Drive records through the slot pool until every child is drained.

    Example:
        ```python
        loop = ControllerLoop(pool=pool, launcher=launcher, reaper=reaper,
                              serializer=serializer, command="/bin/echo", stderr=sys.stderr)
        result = loop.run(["a", "b", "c"])
        ```
    """

    def __init__(
        self,
        *,
        pool: SlotPool,
        launcher: ProcessLauncher,
        reaper: CompletionReaper,
        serializer: OutputSerializer,
        command: str,
        stderr: TextIO,
        extra_args: str = "",
    ) -> None:
        """Wire the collaborators that share one slot pool.

        Example:
            ```python
            loop = ControllerLoop(pool=pool, launcher=launcher, reaper=reaper,
                                  serializer=serializer, command="echo", stderr=sys.stderr)
            ```
        """
        self._pool = pool
        self._launcher = launcher
        self._reaper = reaper
        self._serializer = serializer
        self._command = command
        self._extra_args = extra_args
        self._stderr = stderr
        self._status = AggregateStatus()
        self._result = ControllerResult(status=0)
        self.state = ControllerState.FILLING

    def run(self, records: Iterable[str]) -> ControllerResult:
        """Launch one child per record, then drain the rest and return.

        Example:
            ```python
            result = loop.run(iter_records(handle))
            ```
        """
        iterator = iter(records)
        while self.state is ControllerState.FILLING:
            try:
                record = next(iterator)
            except StopIteration:
                self._enter(ControllerState.DRAINING)
                break
            except OSError as exc:
                self._report(f"couldn't read data set: {exc}")
                self._status.fold(StatusCode.IO_ERROR)
                self._enter(ControllerState.DRAINING)
                break
            self._launch_record(record)

        while self._pool.running_count() > 0:
            self.reap_and_drain()

        self._enter(ControllerState.DONE)
        self._result.status = self._status.value
        return self._result

    def reap_and_drain(self) -> ReapResult:
        """Reap one child, replay its output, and fold its outcome.

        Example:
            ```python
            result = loop.reap_and_drain()
            ```
        """
        result = self._reaper.wait_any()
        self._status.fold(result.outcome.code)
        self._result.reaped.append(result)
        try:
            self._serializer.drain(result.index, result.outcome)
        except OutputError as exc:
            self._report(f"child {result.pid}: {exc}")
            self._status.fold(exc.code)
        return result

    def _launch_record(self, record: str) -> None:
        """Build argv for one record and launch it into a free slot.

        A failed launch is reported and folded; the record is not retried.

        Example:
            ```python
            loop._launch_record("a b")
            ```
        """
        argv = build_argv(self._command, record, self._extra_args)
        index = self._pool.acquire(reclaim=self.reap_and_drain)
        try:
            self._launcher.launch(index, argv)
        except LaunchError as exc:
            self._pool.release(index)
            self._result.launch_failures += 1
            self._status.fold(exc.code)
            self._report(f"{exc} (record {record!r}, program: {' '.join(argv)})")
            return
        self._result.launched += 1

    def _enter(self, state: ControllerState) -> None:
        """Move to `state`.

        Example:
            ```python
            loop._enter(ControllerState.DRAINING)
            ```
        """
        logger.debug("controller %s -> %s", self.state.value, state.value)
        self.state = state

    def _report(self, message: str) -> None:
        """Write one error line to the controller's stderr.

        Example:
            ```python
            loop._report("couldn't start '/bin/missing'")
            ```
        """
        write_line(self._stderr, f"ERROR: {message}")


def build_controller(
    settings: ControllerSettings,
    *,
    stdout: TextIO,
    stderr: TextIO,
    wait: Waiter = os.wait,
) -> ControllerLoop:
    """Create a pool and its launcher, reaper, and serializer for `settings`.

    Example:
        ```python
        loop = build_controller(settings, stdout=sys.stdout, stderr=sys.stderr)
        ```
    """
    pool = SlotPool(settings.num_instances)
    return ControllerLoop(
        pool=pool,
        launcher=ProcessLauncher(pool, stdout, capture_dir=settings.capture_dir),
        reaper=CompletionReaper(pool, stdout, wait=wait),
        serializer=OutputSerializer(pool, stdout, stderr),
        command=settings.command,
        extra_args=settings.optional_args,
        stderr=stderr,
    )


def run_controller(
    settings: ControllerSettings,
    *,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    wait: Waiter = os.wait,
) -> ControllerResult:
    """Run one full fan-out over the data set and print the exit line.

    Example:
        ```python
        result = run_controller(ControllerSettings(command="echo", data_set="d.txt", num_instances=2))
        raise SystemExit(result.status)
        ```
    """
    out = stdout if stdout is not None else sys.stdout
    err = stderr if stderr is not None else sys.stderr
    loop = build_controller(settings, stdout=out, stderr=err, wait=wait)
    try:
        handle = open(settings.data_set, encoding="utf-8", errors="surrogateescape")
    except OSError as exc:
        write_line(err, f"ERROR: couldn't open file {settings.data_set}: {exc.strerror or exc}")
        result = ControllerResult(status=int(StatusCode.IO_ERROR))
    else:
        with handle:
            result = loop.run(iter_records(handle))
    write_line(out, final_line(result.status))
    return result
