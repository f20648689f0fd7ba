from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

CAPTURE_PREFIX = "cpc-"


@dataclass(slots=True)
class OutputCapture:
    """Uniquely named temporary file receiving one child stream.

    The write descriptor is handed to the child at launch and closed in the
    controller right after; the file is read back only once the child ended.

    Example:
        ```python
        capture = OutputCapture.create("out")
        capture.destroy()
        ```
    """

    stream: str
    path: Path
    fd: int | None = None
    destroyed: bool = False

    @classmethod
    def create(cls, stream: str, directory: str | None = None) -> "OutputCapture":
        """Create an empty capture file for `stream` ("out" or "err").

        Raises OSError when the file cannot be created.

        Example:
            ```python
            capture = OutputCapture.create("err", directory="/tmp")
            ```
        """
        fd, name = tempfile.mkstemp(prefix=f"{CAPTURE_PREFIX}{stream}-", dir=directory)
        logger.debug("created %s capture %s", stream, name)
        return cls(stream=stream, path=Path(name), fd=fd)

    def close_writer(self) -> None:
        """Close the controller's copy of the write descriptor.

        Example:
            ```python
            capture.close_writer()
            ```
        """
        if self.fd is not None:
            os.close(self.fd)
            self.fd = None

    def open_reader(self) -> BinaryIO:
        """Open the captured bytes for reading.

        Example:
            ```python
            with capture.open_reader() as source:
                data = source.read()
            ```
        """
        return self.path.open("rb")

    def destroy(self) -> None:
        """Close and delete the backing file; later calls do nothing.

        Example:
            ```python
            capture.destroy()
            ```
        """
        if self.destroyed:
            return
        self.destroyed = True
        try:
            self.close_writer()
        finally:
            try:
                self.path.unlink()
            except FileNotFoundError:
                logger.warning("capture %s was already removed", self.path)
            else:
                logger.debug("removed %s capture %s", self.stream, self.path)


@dataclass(slots=True)
class CapturePair:
    """Stdout and stderr captures owned by one slot's child.

    Example:
        ```python
        pair = CapturePair.create()
        pair.destroy()
        ```
    """

    stdout: OutputCapture
    stderr: OutputCapture

    @classmethod
    def create(cls, directory: str | None = None) -> "CapturePair":
        """Create both captures; a half-created pair is cleaned up.

        Example:
            ```python
            pair = CapturePair.create(directory="/tmp")
            ```
        """
        stdout = OutputCapture.create("out", directory)
        try:
            stderr = OutputCapture.create("err", directory)
        except OSError:
            stdout.destroy()
            raise
        return cls(stdout=stdout, stderr=stderr)

    def close_writers(self) -> None:
        """Close both write descriptors in the controller.

        Example:
            ```python
            pair.close_writers()
            ```
        """
        try:
            self.stdout.close_writer()
        finally:
            self.stderr.close_writer()

    def destroy(self) -> None:
        """Delete both capture files.

        Example:
            ```python
            pair.destroy()
            ```
        """
        try:
            self.stdout.destroy()
        finally:
            self.stderr.destroy()
