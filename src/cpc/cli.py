from __future__ import annotations

import argparse
import logging
import sys
from functools import partial
from typing import Never, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich_argparse import RawTextRichHelpFormatter
from process_fanout import ConfigurationError, ControllerSettings, run_controller
from process_fanout.reporting import final_line
from process_fanout.settings import verify_inputs

_CONSOLE = Console(stderr=True, no_color=False)
_OPTIONAL_ARGS_FLAGS = ("-o", "--optional-args")


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that turns usage errors into argument errors.

    Example:
        ```python
        parser = _RichArgumentParser(prog="cpc")
        ```
    """

    def error(self, message: str) -> Never:
        """Raise parse errors so `main` can report them and exit with ARG_ERROR.

        Example:
            ```python
            # parser.error("argument -n: expected one argument")
            ```
        """
        raise ConfigurationError(message)


def build_parser() -> argparse.ArgumentParser:
    """Build the concurrent process controller argument parser.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="cpc",
        description=(
            "Concurrent Process Controller\n"
            "Run one instance of a command per line of a data set file,\n"
            "keeping num_instances running at once. Each child's stdout and\n"
            "stderr are captured and replayed in order of completion."
        ),
        epilog=(
            "Examples:\n"
            "  cpc -c /bin/echo -d records.txt -n 4\n"
            "  cpc -c ./job.sh -d records.txt -n 2 -o \"--verbose --dry-run\"\n"
            "  cpc --config cpc.toml -n 8\n\n"
            "Exit status is the OR of every child's status and any controller error."
        ),
        formatter_class=_HELP_FORMATTER,
        allow_abbrev=False,
    )
    parser.add_argument(
        "-c",
        "--command",
        metavar="command",
        help="Program to run for each record (path or name on PATH).",
    )
    parser.add_argument(
        "-d",
        "--data-set",
        dest="data_set",
        metavar="data_set_file",
        help="File with one record (child argument line) per line.",
    )
    parser.add_argument(
        "-n",
        "--num-instances",
        dest="num_instances",
        metavar="num_instances",
        help="Number of children kept running concurrently (> 0).",
    )
    parser.add_argument(
        "-o",
        "--optional-args",
        dest="optional_args",
        metavar="optional_args",
        help=(
            "Extra arguments appended to every child's argument list.\n"
            "Must be the last option on the command line."
        ),
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="TOML file providing any of the settings above ([settings] table).",
    )
    parser.add_argument(
        "--capture-dir",
        dest="capture_dir",
        metavar="DIR",
        help="Directory for temporary output captures (default: system temp dir).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log controller internals to stderr.",
    )
    return parser


def _bind_optional_args(argv: list[str]) -> list[str]:
    """Require -o to come last and bind its value even if it starts with '-'.

    Example:
        ```python
        argv = _bind_optional_args(["-n", "2", "-o", "-v"])
        ```
    """
    for position, token in enumerate(argv):
        if token in _OPTIONAL_ARGS_FLAGS:
            if position == len(argv) - 1:
                return argv
            if position != len(argv) - 2:
                raise ConfigurationError("optional arguments must be last")
            return [*argv[:position], f"--optional-args={argv[-1]}"]
        if token.startswith("--optional-args=") or (
            token.startswith("-o") and not token.startswith("--")
        ):
            if position != len(argv) - 1:
                raise ConfigurationError("optional arguments must be last")
            return argv
    return argv


def build_settings(args: argparse.Namespace) -> ControllerSettings:
    """Merge CLI flags over an optional TOML config into validated settings.

    Example:
        ```python
        settings = build_settings(build_parser().parse_args(["-c", "echo", "-d", "d.txt", "-n", "2"]))
        ```
    """
    overrides = {
        "command": args.command,
        "data_set": args.data_set,
        "num_instances": args.num_instances,
        "optional_args": args.optional_args,
        "capture_dir": args.capture_dir,
    }
    if args.config:
        return ControllerSettings.from_file(args.config, overrides)
    return ControllerSettings.from_mapping(overrides)


def _configure_logging(verbose: bool) -> None:
    """Route library logging through Rich on stderr.

    Example:
        ```python
        _configure_logging(verbose=True)
        ```
    """
    package_logger = logging.getLogger("process_fanout")
    package_logger.handlers.clear()
    package_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, show_time=False)
    )
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _print_error(message: str) -> None:
    """Render an error panel on stderr.

    Example:
        ```python
        _print_error("instance count must be greater than 0!")
        ```
    """
    _CONSOLE.print(Panel.fit(f"[bold red]ERROR:[/bold red] {escape(message)}", border_style="red"))


def _echo_arguments(args: argparse.Namespace) -> None:
    """Echo the received argument values to stderr for diagnosis.

    Example:
        ```python
        _echo_arguments(args)
        ```
    """
    for flag, value in (
        ("-c", args.command),
        ("-d", args.data_set),
        ("-n", args.num_instances),
        ("-o", args.optional_args),
    ):
        sys.stderr.write(f"  {flag} argument is '{value or ''}'\n")
    sys.stderr.flush()


def _exit(code: int) -> int:
    """Print the final status line and return `code`.

    Example:
        ```python
        return _exit(1)
        ```
    """
    sys.stdout.write(final_line(code) + "\n")
    sys.stdout.flush()
    return code


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `cpc` command and return its aggregate exit status.

    Example:
        ```python
        code = main(["-c", "/bin/echo", "-d", "records.txt", "-n", "2"])
        ```
    """
    parser = build_parser()
    raw_args = list(argv) if argv is not None else sys.argv[1:]
    try:
        args = parser.parse_args(_bind_optional_args(raw_args))
    except ConfigurationError as exc:
        _print_error(str(exc))
        parser.print_usage(sys.stderr)
        return _exit(exc.code)

    _configure_logging(args.verbose)
    try:
        settings = build_settings(args)
    except ConfigurationError as exc:
        _print_error(str(exc))
        _echo_arguments(args)
        return _exit(exc.code)

    try:
        verify_inputs(settings)
    except ConfigurationError as exc:
        for line in str(exc).splitlines():
            _print_error(line)
        return _exit(exc.code)

    return run_controller(settings).status
