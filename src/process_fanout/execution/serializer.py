from __future__ import annotations

import codecs
import logging
import shutil
from typing import TextIO

from ..errors import OutputError
from ..reporting import banner
from .capture import OutputCapture
from .slot_pool import SlotPool
from .types import SlotState, TerminationOutcome

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


def copy_capture(capture: OutputCapture, dest: TextIO) -> int:
    """Copy a capture byte for byte onto a text stream and return the size.

    Bytes go to `dest.buffer` when the stream has one; otherwise they are
    decoded as UTF-8 with replacement and written as text.

    Example:
        ```python
        copied = copy_capture(slot.captures.stdout, sys.stdout)
        ```
    """
    dest.flush()
    copied = 0
    with capture.open_reader() as source:
        buffer = getattr(dest, "buffer", None)
        if buffer is not None:
            shutil.copyfileobj(source, buffer, COPY_CHUNK_SIZE)
            buffer.flush()
            copied = source.tell()
        else:
            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            for chunk in iter(lambda: source.read(COPY_CHUNK_SIZE), b""):
                copied += len(chunk)
                dest.write(decoder.decode(chunk))
            dest.write(decoder.decode(b"", final=True))
    dest.flush()
    return copied


class OutputSerializer:
    """Replay a reaped child's captures onto the controller streams.

    Runs on the controller thread at reap time, so blocks are grouped per
    child and ordered by completion.

    Example:
        ```python
        serializer = OutputSerializer(pool, sys.stdout, sys.stderr)
        serializer.drain(result.index, result.outcome)
        ```
    """

    def __init__(self, pool: SlotPool, stdout: TextIO, stderr: TextIO) -> None:
        """Bind the serializer to a pool and the controller's streams.

        Example:
            ```python
            serializer = OutputSerializer(pool, sys.stdout, sys.stderr)
            ```
        """
        self._pool = pool
        self._stdout = stdout
        self._stderr = stderr

    def drain(self, index: int, outcome: TerminationOutcome) -> None:
        """Write framed stdout then stderr for slot `index`, then free it.

        Both blocks are always framed, and stderr is replayed even when the
        stdout copy fails. Captures are removed and the slot released before
        the first copy failure is raised as OutputError.

        Example:
            ```python
            serializer.drain(0, TerminationOutcome.exited(0))
            ```
        """
        slot = self._pool.slot(index)
        if slot.state is not SlotState.REAPED or slot.captures is None:
            raise RuntimeError(f"slot {index} is {slot.state.value}, expected reaped")
        pid = slot.pid
        captures = slot.captures
        try:
            failures = [
                self._replay(
                    self._stdout,
                    captures.stdout,
                    banner(f"Stdout from child {pid}"),
                    [*banner(f"End stdout from child {pid}"), "", ""],
                ),
                self._replay(
                    self._stderr,
                    captures.stderr,
                    ["", *banner(f"Stderr from child {pid}")],
                    [*banner(f"End stderr from child {pid}"), ""],
                ),
            ]
        finally:
            try:
                captures.destroy()
            finally:
                self._pool.release(index)
        errors = [failure for failure in failures if failure is not None]
        for extra in errors[1:]:
            logger.warning("child %d: %s", pid, extra)
        if errors:
            raise errors[0]
        logger.debug("drained slot %d for pid %d (%s)", index, pid, outcome.kind)

    def _replay(
        self,
        stream: TextIO,
        capture: OutputCapture,
        head: list[str],
        tail: list[str],
    ) -> OutputError | None:
        """Write one framed block and return its copy failure, if any.

        Example:
            ```python
            failure = serializer._replay(sys.stdout, captures.stdout, head, tail)
            ```
        """
        self._write_lines(stream, head)
        try:
            self._copy(capture, stream)
        except OutputError as exc:
            failure: OutputError | None = exc
        else:
            failure = None
        self._write_lines(stream, tail)
        return failure

    def _copy(self, capture: OutputCapture, dest: TextIO) -> None:
        """Copy one capture, converting read failures into OutputError.

        Example:
            ```python
            serializer._copy(captures.stdout, sys.stdout)
            ```
        """
        try:
            copy_capture(capture, dest)
        except OSError as exc:
            raise OutputError(f"couldn't copy {capture.stream} capture '{capture.path}': {exc}") from exc

    @staticmethod
    def _write_lines(stream: TextIO, lines: list[str]) -> None:
        """Write lines to a stream and flush it.

        Example:
            ```python
            OutputSerializer._write_lines(sys.stdout, ["a", "b"])
            ```
        """
        stream.flush()
        stream.write("".join(f"{line}\n" for line in lines))
        stream.flush()
