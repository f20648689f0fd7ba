from __future__ import annotations

import logging
import subprocess
from typing import Sequence, TextIO

from ..errors import LaunchError
from ..reporting import launch_line, write_line
from ..status import StatusCode
from .capture import CapturePair
from .slot_pool import SlotPool

logger = logging.getLogger(__name__)


class ProcessLauncher:
    """Start one child per call with private stdout/stderr captures.

    Example:
        ```python
        launcher = ProcessLauncher(pool, stdout=sys.stdout)
        pid = launcher.launch(pool.acquire(), ["/bin/echo", "a"])
        ```
    """

    def __init__(
        self,
        pool: SlotPool,
        stdout: TextIO,
        *,
        capture_dir: str | None = None,
    ) -> None:
        """Bind the launcher to a pool and the controller's stdout.

        Example:
            ```python
            launcher = ProcessLauncher(pool, sys.stdout, capture_dir="/tmp")
            ```
        """
        self._pool = pool
        self._stdout = stdout
        self._capture_dir = capture_dir

    def launch(self, index: int, argv: Sequence[str]) -> int:
        """Launch `argv` into reserved slot `index` and return the child pid.

        On failure nothing is occupied and every capture is removed. A child
        whose program image cannot be replaced exits at once inside the
        subprocess module and is reported here as a system error.

        Example:
            ```python
            pid = launcher.launch(0, ["/bin/echo", "hello"])
            ```
        """
        if not argv:
            raise LaunchError("empty argument vector", code=StatusCode.ARG_ERROR)
        try:
            captures = CapturePair.create(self._capture_dir)
        except OSError as exc:
            raise LaunchError(
                f"Couldn't create temporary output files: {exc}",
                code=StatusCode.IO_ERROR,
            ) from exc

        try:
            process = subprocess.Popen(
                list(argv),
                stdout=captures.stdout.fd,
                stderr=captures.stderr.fd,
                close_fds=True,
            )
        except (OSError, ValueError) as exc:
            captures.destroy()
            raise LaunchError(
                f"couldn't start '{argv[0]}': {exc}",
                code=StatusCode.SYS_ERROR,
            ) from exc
        except BaseException:
            captures.destroy()
            raise

        captures.close_writers()
        self._pool.occupy(index, pid=process.pid, process=process, captures=captures)
        write_line(self._stdout, launch_line(process.pid, argv))
        logger.debug("launched pid %d in slot %d: %s", process.pid, index, list(argv))
        return process.pid
