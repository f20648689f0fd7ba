from pathlib import Path

import pytest

from process_fanout import ConfigurationError, ControllerSettings, StatusCode
from process_fanout.settings import DEFAULT_MAX_COMMAND_LEN, DEFAULT_MAX_DATA_SET_LEN, verify_inputs


def test_bundled_defaults_are_loaded() -> None:
    assert DEFAULT_MAX_DATA_SET_LEN == 100
    assert DEFAULT_MAX_COMMAND_LEN == 200


@pytest.mark.parametrize("count", [0, -3])
def test_instance_count_must_be_positive(count: int) -> None:
    with pytest.raises(ConfigurationError, match="greater than 0") as exc_info:
        ControllerSettings(command="echo", data_set="d.txt", num_instances=count)
    assert exc_info.value.code == StatusCode.ARG_ERROR


def test_length_limits_are_enforced() -> None:
    with pytest.raises(ConfigurationError, match="command argument exceeds"):
        ControllerSettings(command="x" * 201, data_set="d.txt", num_instances=1)
    with pytest.raises(ConfigurationError, match="data_set_file argument exceeds"):
        ControllerSettings(command="echo", data_set="d" * 101, num_instances=1)
    with pytest.raises(ConfigurationError, match="optional arguments exceed"):
        ControllerSettings(command="echo", data_set="d.txt", num_instances=1, optional_args="o" * 201)


def test_from_mapping_reports_every_missing_argument() -> None:
    with pytest.raises(ConfigurationError, match="-c, -d, -n"):
        ControllerSettings.from_mapping({"command": None, "data_set": "", "num_instances": None})


def test_from_mapping_rejects_non_integer_count() -> None:
    with pytest.raises(ConfigurationError, match="must be an integer"):
        ControllerSettings.from_mapping({"command": "echo", "data_set": "d.txt", "num_instances": "many"})


def test_from_file_reads_settings_table_and_applies_overrides(tmp_path: Path) -> None:
    config = tmp_path / "cpc.toml"
    config.write_text(
        (
            "[settings]\n"
            "command = \"echo\"\n"
            "data_set = \"records.txt\"\n"
            "num_instances = 2\n"
            "optional_args = \"-v\"\n"
            "max_command_len = 10\n"
        ),
        encoding="utf-8",
    )

    settings = ControllerSettings.from_file(str(config), {"num_instances": "6", "command": None})

    assert settings.command == "echo"
    assert settings.num_instances == 6
    assert settings.optional_args == "-v"
    assert settings.max_command_len == 10


def test_from_file_rejects_invalid_toml(tmp_path: Path) -> None:
    config = tmp_path / "broken.toml"
    config.write_text("num_instances = = 2\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="invalid TOML"):
        ControllerSettings.from_file(str(config))


def test_verify_inputs_reports_missing_files(tmp_path: Path) -> None:
    settings = ControllerSettings(
        command=str(tmp_path / "no-such-program"),
        data_set=str(tmp_path / "no-such-data.txt"),
        num_instances=1,
    )

    with pytest.raises(ConfigurationError) as exc_info:
        verify_inputs(settings)

    assert exc_info.value.code == StatusCode.SYS_ERROR
    assert "no-such-program" in str(exc_info.value)
    assert "no-such-data.txt" in str(exc_info.value)


def test_verify_inputs_accepts_command_on_path(tmp_path: Path) -> None:
    data_set = tmp_path / "d.txt"
    data_set.write_text("a\n", encoding="utf-8")

    verify_inputs(ControllerSettings(command="sh", data_set=str(data_set), num_instances=1))
