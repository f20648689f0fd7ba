import io

from process_fanout.records import build_argv, iter_records


def test_iter_records_strips_line_endings_and_keeps_blank_lines() -> None:
    handle = io.StringIO("a b\r\n\nc\n")
    assert list(iter_records(handle)) == ["a b", "", "c"]


def test_iter_records_is_lazy() -> None:
    handle = io.StringIO("first\nsecond\n")
    records = iter_records(handle)
    assert next(records) == "first"
    assert handle.readline() == "second\n"


def test_build_argv_puts_program_first() -> None:
    assert build_argv("/bin/echo", "a  b\tc", "-x  -y") == ["/bin/echo", "a", "b", "c", "-x", "-y"]


def test_build_argv_blank_record_and_sequence_extras() -> None:
    assert build_argv("prog", "", ["--flag"]) == ["prog", "--flag"]
    assert build_argv("prog", "   ") == ["prog"]
