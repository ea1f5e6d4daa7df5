import time
from datetime import datetime

import pytest

from flowinspector.logger import LogLevel, Logger, current_time, format_timestamp
from flowinspector.packet import raw_packet
from flowinspector.rules import Alert, LogEntry


@pytest.fixture
def logger(tmp_path):
    log = Logger(tmp_path / "fixture.log")
    yield log
    log.close()


def test_log_packet_event(logger):
    logger.log_packet(raw_packet(bytes([1, 2, 3, 4])))
    assert "Packet: [1 2 3 4]" in logger.export_logs()


def test_log_alert_event(logger):
    logger.log_alert(Alert("Test alert message"))
    assert "Alert: Test alert message" in logger.export_logs()


def test_export_empty_log_entries(logger, tmp_path):
    assert logger.export_logs() == ""
    path = tmp_path / "temp_empty_log.txt"
    logger.set_output_filename(path)
    assert logger.export_logs_to_file() is True
    assert path.read_text() == ""


def test_export_logs_to_file(logger, tmp_path):
    logger.log_packet(raw_packet(bytes([1, 2, 3, 4])))
    logger.log_alert(Alert("Test alert message"))
    path = tmp_path / "temp_log.txt"
    logger.set_output_filename(path)
    logger.export_logs_to_file()
    content = path.read_text()
    assert "Packet: [1 2 3 4]" in content
    assert "Alert: Test alert message" in content


def test_handle_large_number_of_log_entries(logger):
    entries = 1000
    for i in range(entries):
        if i % 2 == 0:
            logger.log_packet(raw_packet(bytes([1, 2, 3, 4])))
        else:
            logger.log_alert(Alert("Test alert message"))
    exported = logger.export_logs()
    assert exported.count("Packet:") == entries // 2
    assert exported.count("Alert:") == entries // 2


def test_log_rotation_when_max_entries_exceeded(tmp_path):
    path = tmp_path / "temp_rotated_log.txt"
    logger = Logger()
    logger.set_output_filename(path)
    try:
        for i in range(Logger.DEFAULT_MAX_LOG_ENTRIES + 1):
            logger.log_packet(raw_packet(bytes([i & 0xFF])))
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline and not (
            path.exists() and path.stat().st_size > 0
        ):
            time.sleep(0.01)
        for i in range(Logger.DEFAULT_MAX_LOG_ENTRIES - 100):
            logger.log_packet(raw_packet(bytes([i & 0xFF])))
        content = path.read_text()
        assert content != ""
        assert content.count("Packet:") <= Logger.DEFAULT_MAX_LOG_ENTRIES + 1
    finally:
        logger.close()


def test_set_output_filename_creates_file(logger, tmp_path):
    path = tmp_path / "new_output.log"
    logger.set_output_filename(path)
    logger.export_logs_to_file()
    assert path.is_file()


def test_close_writes_remaining_entries(tmp_path):
    path = tmp_path / "test_destructor.log"
    with Logger() as logger:
        logger.set_output_filename(path)
        for i in range(100):
            logger.log_message(f"Test message {i}")
    content = path.read_text()
    assert "Test message 0" in content
    assert "Test message 99" in content


def test_first_export_truncates_then_appends(logger, tmp_path):
    path = tmp_path / "out.log"
    path.write_text("old content\n")
    logger.set_output_filename(path)
    logger.log_message("first")
    logger.export_logs_to_file()
    logger.log_message("second")
    logger.export_logs_to_file()
    content = path.read_text()
    assert "old content" not in content
    assert content.index("Message: first") < content.index("Message: second")


def test_unopenable_file_keeps_entries(logger, tmp_path, capsys):
    logger.set_output_filename(tmp_path)
    logger.log_message("kept")
    assert logger.export_logs_to_file() is False
    assert "Error opening file" in capsys.readouterr().err
    assert "Message: kept" in logger.export_logs()


def test_warning_level_filters_packets_and_messages(logger):
    logger.set_level(LogLevel.WARNING)
    logger.log_packet(raw_packet(bytes([1])))
    logger.log_message("hidden")
    logger.log_alert(Alert("shown"))
    exported = logger.export_logs()
    assert "Packet:" not in exported
    assert "hidden" not in exported
    assert "Alert: shown" in exported


def test_error_level_drops_alerts(logger):
    logger.set_level(LogLevel.ERROR)
    logger.log_alert(Alert("dropped"))
    assert logger.export_logs() == ""


def test_debug_messages_depend_on_level(logger):
    logger.set_level(LogLevel.INFO)
    logger.log_debug("quiet")
    assert logger.export_logs() == ""
    logger.set_level(LogLevel.DEBUG)
    logger.log_debug("loud")
    assert "Message: loud" in logger.export_logs()


def test_log_event_is_not_filtered(logger):
    logger.set_level(LogLevel.ERROR)
    logger.log_event(LogEntry(timestamp=0, message="direct"))
    assert "Message: direct" in logger.export_logs()


def test_entry_line_starts_with_timestamp(logger):
    stamp = 1_700_000_000
    logger.log_event(LogEntry(timestamp=stamp, message="stamp"))
    assert logger.export_logs() == format_timestamp(stamp) + " Message: stamp \n"


def test_format_timestamp_round_trips():
    stamp = 1_700_000_000
    parsed = datetime.strptime(format_timestamp(stamp), "%Y-%m-%d %H:%M:%S")
    assert parsed == datetime.fromtimestamp(stamp)


def test_current_time_is_now():
    assert abs(current_time() - time.time()) < 5