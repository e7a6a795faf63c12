"""
core/logging_config.py
Logging setup for the plugins manager.
Human-readable console output plus a log file; optional JSON format
for machine-parseable file logs.

The dispatcher receives a configurator object at construction time:
``LoggingConfigurator`` when logging should be set up, otherwise
``NullLoggingConfigurator``.
"""

from __future__ import annotations
import json
import logging
import os
import time


# ── Structured JSON Formatter ─────────────────────────────────────────────

class StructuredFormatter(logging.Formatter):
    """
    JSON log formatter.
    Fields: ts, level, logger, msg, exception
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


# ── Setup ─────────────────────────────────────────────────────────────────

def setup_logging(level: str = "INFO", structured: bool = False,
                  log_dir: str = ".logs"):
    """
    Configure the root logger.
    Args:
        level: log level (DEBUG/INFO/WARNING/ERROR)
        structured: if True, the log file uses JSON lines
        log_dir: directory for pmgr.log
    """
    os.makedirs(log_dir, exist_ok=True)
    lvl = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(lvl)

    for h in root.handlers[:]:
        root.removeHandler(h)

    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "[%(asctime)s][%(name)s][%(levelname)s] %(message)s",
            datefmt="%H:%M:%S",
        )

    # Console: progress and info lines go to stderr, stdout stays for output
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(
        "[%(asctime)s][%(levelname)s] %(message)s", datefmt="%H:%M:%S"))
    console.setLevel(lvl)
    root.addHandler(console)

    log_path = os.path.join(log_dir, "pmgr.log")
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    file_handler.setLevel(lvl)
    root.addHandler(file_handler)

    return root


class LoggingConfigurator:
    """Sets up logging from settings when the dispatcher starts."""

    def __init__(self, level: str = "INFO", structured: bool = False,
                 log_dir: str = ".logs"):
        self.level = level
        self.structured = structured
        self.log_dir = log_dir

    @classmethod
    def from_settings(cls, settings) -> "LoggingConfigurator":
        log_dir = settings.log_dir
        if not os.path.isabs(log_dir):
            log_dir = os.path.join(settings.home, log_dir)
        return cls(level=settings.log_level,
                   structured=settings.structured_logs,
                   log_dir=log_dir)

    def configure(self):
        setup_logging(self.level, self.structured, self.log_dir)


class NullLoggingConfigurator:
    """Leaves logging as the host process configured it."""

    def configure(self):
        pass
