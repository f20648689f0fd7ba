from __future__ import annotations

import logging
import os
from typing import Callable, TextIO

from ..reporting import termination_line, write_line
from .slot_pool import SlotPool
from .types import ReapResult, classify_wait_status

logger = logging.getLogger(__name__)

Waiter = Callable[[], tuple[int, int]]


class CompletionReaper:
    """Block until any pooled child ends and attribute it to its slot.

    Example:
        ```python
        reaper = CompletionReaper(pool, stdout=sys.stdout)
        result = reaper.wait_any()
        ```
    """

    def __init__(self, pool: SlotPool, stdout: TextIO, *, wait: Waiter = os.wait) -> None:
        """Bind the reaper to a pool, an output stream, and a wait primitive.

        `wait` returns `(pid, raw_status)` like `os.wait`.

        Example:
            ```python
            reaper = CompletionReaper(pool, sys.stdout, wait=os.wait)
            ```
        """
        self._pool = pool
        self._stdout = stdout
        self._wait = wait

    def wait_any(self) -> ReapResult:
        """Wait for the next pooled child to terminate and classify it.

        Children of the host process that the pool does not own are waited
        past with a warning.

        Example:
            ```python
            result = reaper.wait_any()
            print(result.index, result.outcome.code)
            ```
        """
        if self._pool.running_count() == 0:
            raise RuntimeError("wait_any() called with no running children")
        while True:
            try:
                pid, raw_status = self._wait()
            except ChildProcessError as exc:
                raise RuntimeError(
                    f"{self._pool.running_count()} pooled child(ren) vanished before being reaped"
                ) from exc
            index = self._pool.mark_reaped(pid)
            if index is not None:
                break
            logger.warning("reaped pid %d which is not owned by the slot pool", pid)

        outcome = classify_wait_status(raw_status)
        slot = self._pool.slot(index)
        if slot.process is not None:
            # os.wait already collected the status; keep Popen from waiting again.
            slot.process.returncode = outcome.returncode
        write_line(self._stdout, termination_line(pid, outcome))
        logger.debug("slot %d reaped pid %d: %s", index, pid, outcome)
        return ReapResult(index=index, pid=pid, outcome=outcome)
