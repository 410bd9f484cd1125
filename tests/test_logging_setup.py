"""Tests for the console + rotating JSON file log sink."""

import gzip
import json
import logging
import os
import sys
import time
from pathlib import Path

import pytest

from heartbeat.config import LoggingConfig
from heartbeat.generators.log_generator import EMITTER_LOGGER_NAME, LogCorrelator
from heartbeat.logging_setup import (
    CompressedRotatingFileHandler,
    ConsoleFormatter,
    JSONFormatter,
    configure_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        EMITTER_LOGGER_NAME, logging.INFO, __file__, 10, "in progress ...", None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_json_formatter_includes_extra_fields() -> None:
    line = JSONFormatter().format(_record(iteration=3, latency=0.42))
    data = json.loads(line)

    assert data["level"] == "info"
    assert data["message"] == "in progress ..."
    assert data["logger"] == EMITTER_LOGGER_NAME
    assert data["iteration"] == 3
    assert data["latency"] == 0.42
    assert "timestamp" in data


def test_json_formatter_renders_exceptions() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record()
        record.exc_info = sys.exc_info()
    data = json.loads(JSONFormatter().format(record))
    assert "ValueError: boom" in data["exception"]


def test_console_formatter_appends_fields() -> None:
    line = ConsoleFormatter().format(_record(iteration=1, latency=0.5))
    assert "INFO" in line
    assert "in progress ..." in line
    assert line.endswith('{"iteration": 1, "latency": 0.5}')


def test_rotation_compresses_and_caps_backups(tmp_path: Path) -> None:
    log_file = tmp_path / "log" / "app.log"
    handler = CompressedRotatingFileHandler(str(log_file), maxBytes=200, backupCount=2)
    handler.setFormatter(JSONFormatter())
    try:
        for i in range(50):
            handler.emit(_record(iteration=i, latency=0.1))
    finally:
        handler.close()

    backups = handler.backup_files()
    assert [p.name for p in backups] == ["app.log.1.gz", "app.log.2.gz"]
    with gzip.open(backups[0], "rt", encoding="utf-8") as f:
        lines = [json.loads(line) for line in f if line.strip()]
    assert lines and all("iteration" in line for line in lines)


def test_rotation_without_compression(tmp_path: Path) -> None:
    log_file = tmp_path / "app.log"
    handler = CompressedRotatingFileHandler(
        str(log_file), maxBytes=200, backupCount=1, compress=False
    )
    handler.setFormatter(JSONFormatter())
    try:
        for i in range(20):
            handler.emit(_record(iteration=i))
    finally:
        handler.close()
    assert [p.name for p in handler.backup_files()] == ["app.log.1"]


def test_prune_expired_removes_old_backups(tmp_path: Path) -> None:
    log_file = tmp_path / "app.log"
    handler = CompressedRotatingFileHandler(str(log_file), backupCount=7, max_age_days=30)
    old = tmp_path / "app.log.3.gz"
    recent = tmp_path / "app.log.1.gz"
    old.write_bytes(b"")
    recent.write_bytes(b"")
    forty_days_ago = time.time() - 40 * 86400
    os.utime(old, (forty_days_ago, forty_days_ago))
    try:
        removed = handler.prune_expired()
    finally:
        handler.close()

    assert removed == [old]
    assert not old.exists()
    assert recent.exists()


def test_configure_logging_writes_info_json_to_file(
    tmp_path: Path, restore_root_logger, capsys
) -> None:
    """File sink gets INFO and above as JSON; the console also gets DEBUG."""
    log_file = tmp_path / "app.log"
    configure_logging(LoggingConfig(file=str(log_file)))

    logging.getLogger("heartbeat.tests").debug("debug only on console")
    LogCorrelator().emit(7, 0.33)
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert len(lines) == 1
    assert lines[0]["iteration"] == 7
    assert lines[0]["latency"] == 0.33
    assert lines[0]["level"] == "info"

    out = capsys.readouterr().out
    assert "debug only on console" in out
    assert "in progress ..." in out


def test_configure_logging_without_file(restore_root_logger) -> None:
    configure_logging(LoggingConfig(file=None))
    handler_types = {type(h) for h in logging.getLogger().handlers}
    assert CompressedRotatingFileHandler not in handler_types
