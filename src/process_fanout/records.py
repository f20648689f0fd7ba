from __future__ import annotations

from typing import IO, Iterator, Sequence


def iter_records(handle: IO[str]) -> Iterator[str]:
    """Yield one record per input line, without its line terminator.

    Lines are produced lazily; blank lines are still records.

    Example:
        ```python
        with open("records.txt", encoding="utf-8", errors="surrogateescape") as fh:
            records = list(iter_records(fh))
        ```
    """
    for line in handle:
        yield line.rstrip("\r\n")


def build_argv(command: str, record: str, extra_args: str | Sequence[str] = "") -> list[str]:
    """Combine the program path, record tokens, and extra tokens into argv.

    Example:
        ```python
        argv = build_argv("/bin/echo", "a b", "-n")
        assert argv == ["/bin/echo", "a", "b", "-n"]
        ```
    """
    extra = extra_args.split() if isinstance(extra_args, str) else list(extra_args)
    return [command, *record.split(), *extra]
