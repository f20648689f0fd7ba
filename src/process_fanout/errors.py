from __future__ import annotations

from .status import StatusCode


class ControllerError(Exception):
    """Base error carrying the status code it contributes to the run.

    Example:
        ```python
        raise ControllerError("unexpected failure", code=StatusCode.OTHER_ERROR)
        ```
    """

    def __init__(self, message: str, *, code: int = StatusCode.OTHER_ERROR) -> None:
        """Store the message and status code.

        Example:
            ```python
            error = ControllerError("boom", code=StatusCode.SYS_ERROR)
            ```
        """
        super().__init__(message)
        self.code = int(code)


class ConfigurationError(ControllerError):
    """Invalid or missing run configuration; the run never starts.

    Example:
        ```python
        raise ConfigurationError("instance count must be greater than 0")
        ```
    """

    def __init__(self, message: str, *, code: int = StatusCode.ARG_ERROR) -> None:
        """Default the status code to ARG_ERROR.

        Example:
            ```python
            error = ConfigurationError("missing -c argument")
            ```
        """
        super().__init__(message, code=code)


class LaunchError(ControllerError):
    """A single launch was aborted; the record is dropped, the run continues.

    Example:
        ```python
        raise LaunchError("couldn't create temporary output files", code=StatusCode.IO_ERROR)
        ```
    """


class OutputError(ControllerError):
    """Copying a drained capture to the controller streams failed.

    Example:
        ```python
        raise OutputError("couldn't read capture /tmp/cpc-out-x")
        ```
    """

    def __init__(self, message: str, *, code: int = StatusCode.IO_ERROR) -> None:
        """Default the status code to IO_ERROR.

        Example:
            ```python
            error = OutputError("short read")
            ```
        """
        super().__init__(message, code=code)
