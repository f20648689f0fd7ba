from __future__ import annotations

import shutil
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigurationError
from .status import StatusCode


def _default_settings_path() -> Path:
    """Return bundled default settings TOML path.

    Example:
        ```python
        path = _default_settings_path()
        ```
    """
    return Path(__file__).with_name("default_settings.toml")


def read_settings_table(path: Path) -> dict[str, Any]:
    """Read a settings TOML file and return its settings table.

    Accepts either a top-level `[settings]` table or bare keys.

    Example:
        ```python
        raw = read_settings_table(Path("/tmp/cpc.toml"))
        ```
    """
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"couldn't read config file '{path}': {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"invalid TOML in config file '{path}': {exc}") from exc
    table = raw.get("settings", raw)
    if not isinstance(table, dict):
        raise ConfigurationError("Settings config must be a TOML table")
    return table


def _read_defaults() -> dict[str, Any]:
    """Load bundled defaults, falling back to built-in limits when absent.

    Example:
        ```python
        defaults = _read_defaults()
        ```
    """
    path = _default_settings_path()
    if not path.exists():
        return {
            "max_data_set_len": 100,
            "max_command_len": 200,
            "max_optional_args_len": 200,
        }
    return read_settings_table(path)


_DEFAULTS_RAW = _read_defaults()
DEFAULT_MAX_DATA_SET_LEN = int(_DEFAULTS_RAW.get("max_data_set_len", 100))
DEFAULT_MAX_COMMAND_LEN = int(_DEFAULTS_RAW.get("max_command_len", 200))
DEFAULT_MAX_OPTIONAL_ARGS_LEN = int(_DEFAULTS_RAW.get("max_optional_args_len", 200))


def _as_int(value: Any, field_name: str) -> int:
    """Coerce a settings value to int or raise an argument error.

    Example:
        ```python
        count = _as_int("4", "num_instances")
        ```
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"'{field_name}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{field_name}' must be an integer, got {value!r}") from exc


@dataclass(frozen=True, slots=True)
class ControllerSettings:
    """Validated configuration for one controller run.

    Example:
        ```python
        settings = ControllerSettings(command="/bin/echo", data_set="records.txt", num_instances=4)
        ```
    """

    command: str
    data_set: str
    num_instances: int
    optional_args: str = ""
    capture_dir: str | None = None
    max_data_set_len: int = DEFAULT_MAX_DATA_SET_LEN
    max_command_len: int = DEFAULT_MAX_COMMAND_LEN
    max_optional_args_len: int = DEFAULT_MAX_OPTIONAL_ARGS_LEN

    def __post_init__(self) -> None:
        """Validate mandatory values, lengths, and the instance count.

        Example:
            ```python
            ControllerSettings(command="/bin/echo", data_set="records.txt", num_instances=1)
            ```
        """
        missing = [
            flag
            for flag, value in (("-c", self.command), ("-d", self.data_set))
            if not value
        ]
        if missing:
            raise ConfigurationError(f"missing mandatory argument(s): {', '.join(missing)}")
        if len(self.data_set) > self.max_data_set_len:
            raise ConfigurationError(
                "data_set_file argument exceeds maximum length of "
                f"{self.max_data_set_len} characters!"
            )
        if len(self.command) > self.max_command_len:
            raise ConfigurationError(
                f"command argument exceeds maximum length of {self.max_command_len} characters!"
            )
        if len(self.optional_args) > self.max_optional_args_len:
            raise ConfigurationError(
                "optional arguments exceed maximum length of "
                f"{self.max_optional_args_len} characters!"
            )
        if self.num_instances <= 0:
            raise ConfigurationError("instance count must be greater than 0!")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ControllerSettings":
        """Create settings from a plain mapping such as a TOML table.

        Example:
            ```python
            settings = ControllerSettings.from_mapping({"command": "echo", "data_set": "d.txt", "num_instances": 2})
            ```
        """
        missing = [
            flag
            for flag, key in (("-c", "command"), ("-d", "data_set"), ("-n", "num_instances"))
            if raw.get(key) in (None, "")
        ]
        if missing:
            raise ConfigurationError(f"missing mandatory argument(s): {', '.join(missing)}")
        capture_dir = raw.get("capture_dir")
        return cls(
            command=str(raw.get("command") or ""),
            data_set=str(raw.get("data_set") or ""),
            num_instances=_as_int(raw["num_instances"], "num_instances"),
            optional_args=str(raw.get("optional_args") or ""),
            capture_dir=str(capture_dir) if capture_dir else None,
            max_data_set_len=_as_int(
                raw.get("max_data_set_len", DEFAULT_MAX_DATA_SET_LEN), "max_data_set_len"
            ),
            max_command_len=_as_int(
                raw.get("max_command_len", DEFAULT_MAX_COMMAND_LEN), "max_command_len"
            ),
            max_optional_args_len=_as_int(
                raw.get("max_optional_args_len", DEFAULT_MAX_OPTIONAL_ARGS_LEN),
                "max_optional_args_len",
            ),
        )

    @classmethod
    def from_file(
        cls,
        config_path: str,
        overrides: Mapping[str, Any] | None = None,
    ) -> "ControllerSettings":
        """Create settings from a TOML file; non-None overrides win.

        Example:
            ```python
            settings = ControllerSettings.from_file("/tmp/cpc.toml", {"num_instances": 8})
            ```
        """
        raw = read_settings_table(Path(config_path))
        for key, value in (overrides or {}).items():
            if value is not None:
                raw[key] = value
        return cls.from_mapping(raw)


def command_exists(command: str) -> bool:
    """Return True when the command is an existing path or found on PATH.

    Example:
        ```python
        assert command_exists("sh")
        ```
    """
    return Path(command).exists() or shutil.which(command) is not None


def verify_inputs(settings: ControllerSettings) -> None:
    """Check that the data set file and the command exist.

    Both checks run so every problem is reported at once.

    Example:
        ```python
        verify_inputs(settings)
        ```
    """
    problems: list[str] = []
    if not Path(settings.data_set).exists():
        problems.append(f"stat() failed on file '{settings.data_set}': No such file or directory")
    if not command_exists(settings.command):
        problems.append(f"stat() failed on file '{settings.command}': No such file or directory")
    if problems:
        raise ConfigurationError("\n".join(problems), code=StatusCode.SYS_ERROR)
