"""
Log sink setup: human-readable console plus rotating JSON-lines file.

- console: DEBUG and above, "time level logger message {extra fields}"
- file:    INFO and above, one JSON object per line, rotated by size,
           rotated files gzip-compressed and deleted after max_age_days
"""

import gzip
import json
import logging
import logging.config
import logging.handlers
import os
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import LoggingConfig

# Attributes every LogRecord has; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Return the structured fields passed via `extra=` on a log call."""
    return {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "caller": f"{record.module}:{record.lineno}",
            "message": record.getMessage(),
        }
        log_data.update(record_extras(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Plain text line with the structured fields appended as JSON."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = record_extras(record)
        if extras:
            line = f"{line} {json.dumps(extras, default=str)}"
        return line


class CompressedRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """
    RotatingFileHandler that gzips rotated files and prunes old ones.

    Backups are named app.log.1.gz, app.log.2.gz, ... (or app.log.1, ... when
    compress is False). At most backupCount backups are kept, and backups whose
    mtime is older than max_age_days are deleted on each rollover.
    """

    def __init__(
        self,
        filename: str,
        maxBytes: int = 0,
        backupCount: int = 0,
        max_age_days: int = 0,
        compress: bool = True,
        encoding: str | None = "utf-8",
        delay: bool = False,
    ):
        Path(filename).parent.mkdir(parents=True, exist_ok=True)
        super().__init__(
            filename,
            maxBytes=maxBytes,
            backupCount=backupCount,
            encoding=encoding,
            delay=delay,
        )
        self.max_age_days = max_age_days
        self.compress = compress
        if compress:
            self.namer = self._gzip_name
            self.rotator = self._gzip_rotate

    @staticmethod
    def _gzip_name(name: str) -> str:
        return name + ".gz"

    @staticmethod
    def _gzip_rotate(source: str, dest: str) -> None:
        with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
            shutil.copyfileobj(src, dst)
        os.remove(source)

    def backup_files(self) -> list[Path]:
        base = Path(self.baseFilename)
        return sorted(p for p in base.parent.glob(base.name + ".*") if p.is_file())

    def prune_expired(self, now: float | None = None) -> list[Path]:
        """Delete backups older than max_age_days; returns the deleted paths."""
        if self.max_age_days <= 0:
            return []
        cutoff = (now if now is not None else time.time()) - self.max_age_days * 86400
        removed = []
        for path in self.backup_files():
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed.append(path)
            except FileNotFoundError:
                continue
        return removed

    def doRollover(self) -> None:
        super().doRollover()
        self.prune_expired()


def configure_logging(config: LoggingConfig | None = None) -> None:
    """
    Install the console and (optional) rotating file sinks on the root logger.

    Args:
        config: LoggingConfig; defaults when None. config.file=None disables the file sink.
    """
    config = config or LoggingConfig()
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "level": config.console_level.upper(),
            "stream": "ext://sys.stdout",
        },
    }
    if config.file:
        handlers["file"] = {
            "()": CompressedRotatingFileHandler,
            "filename": config.file,
            "maxBytes": config.max_size_mb * 1024 * 1024,
            "backupCount": config.max_backups,
            "max_age_days": config.max_age_days,
            "compress": config.compress,
            "formatter": "json",
            "level": config.file_level.upper(),
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": JSONFormatter},
                "console": {"()": ConsoleFormatter},
            },
            "handlers": handlers,
            "root": {
                "level": "DEBUG",
                "handlers": list(handlers),
            },
        }
    )


def shutdown_logging() -> None:
    """Flush and close all handlers."""
    logging.shutdown()
