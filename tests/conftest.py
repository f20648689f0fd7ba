from __future__ import annotations

import re
from pathlib import Path

import pytest

CHILD_SCRIPT = """#!/bin/sh
case "$1" in
  slow) sleep 1; echo "slow done" ;;
  kill) kill -9 $$ ;;
  fail) echo "failing $2" >&2; exit 5 ;;
  both) echo "to stdout"; echo "to stderr" >&2 ;;
  *) echo "$@" ;;
esac
"""

STDOUT_BLOCK = re.compile(
    r"\*+ Stdout from child (\d+) \*+\n\*{70}\n(.*?)\*{70}\n\*+ End stdout from child \1 \*+\n",
    re.S,
)
STDERR_BLOCK = re.compile(
    r"\*+ Stderr from child (\d+) \*+\n\*{70}\n(.*?)\*{70}\n\*+ End stderr from child \1 \*+\n",
    re.S,
)


def stdout_blocks(text: str) -> list[tuple[int, str]]:
    return [(int(pid), body) for pid, body in STDOUT_BLOCK.findall(text)]


def stderr_blocks(text: str) -> list[tuple[int, str]]:
    return [(int(pid), body) for pid, body in STDERR_BLOCK.findall(text)]


@pytest.fixture
def child_script(tmp_path: Path) -> Path:
    script = tmp_path / "child.sh"
    script.write_text(CHILD_SCRIPT, encoding="utf-8")
    script.chmod(0o755)
    return script


@pytest.fixture
def capture_dir(tmp_path: Path) -> Path:
    path = tmp_path / "captures"
    path.mkdir()
    return path


@pytest.fixture
def write_data_set(tmp_path: Path):
    def _write(*records: str) -> Path:
        path = tmp_path / "records.txt"
        path.write_text("".join(f"{record}\n" for record in records), encoding="utf-8")
        return path

    return _write
