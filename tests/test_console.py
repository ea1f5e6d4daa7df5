import sys

import pytest

from flowinspector.console import (
    ConsoleLevel,
    Verbosity,
    console_level,
    debug_stream,
    info_stream,
)


@pytest.fixture(autouse=True)
def _reset_level():
    console_level().disable()
    yield
    console_level().disable()


def test_info_stream_writes_to_stdout(capsys):
    print("hello", file=info_stream())
    assert capsys.readouterr().out == "hello\n"


def test_debug_stream_silent_by_default(capsys):
    print("hidden", file=debug_stream())
    assert capsys.readouterr().out == ""


def test_enable_lets_debug_through(capsys):
    console_level().enable()
    print("visible", file=debug_stream())
    assert capsys.readouterr().out == "visible\n"


def test_disable_after_enable_silences_debug(capsys):
    console_level().enable()
    console_level().disable()
    print("hidden", file=debug_stream())
    assert capsys.readouterr().out == ""


def test_null_stream_reports_length_written():
    level = ConsoleLevel()
    written = level.stream(Verbosity.DEBUG).write("abcdef")
    assert written == len("abcdef")


def test_stream_info_is_stdout():
    level = ConsoleLevel()
    assert level.stream(Verbosity.INFO) is sys.stdout


def test_console_level_is_shared():
    console_level().enable()
    assert console_level().level == Verbosity.DEBUG
    assert debug_stream() is sys.stdout


def test_separate_level_is_independent():
    level = ConsoleLevel()
    level.enable()
    assert level.level == Verbosity.DEBUG
    assert console_level().level == Verbosity.INFO