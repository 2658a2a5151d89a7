"""
Openwave Logging Configuration
==============================

One place to set up logging for the API process and the CLI.

- Human-readable lines for local runs, JSON lines when LOG_JSON is set
- Optional rotating log file
- Per-logger levels, e.g. LOG_LEVELS="src.rag=DEBUG,qdrant_client=WARNING"

Indexing runs and chat requests attach `run_id` / `request_id`,
`stage` and `duration` through `extra=`; the JSON formatter lifts
those onto the record.

Usage:
    from src.data.logging_config import configure_logging

    configure_logging(get_settings())
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Dict, Optional

# Loggers that are chatty at INFO during normal operation
NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "qdrant_client", "anthropic", "openai")


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

        {"ts": "...", "level": "INFO", "app": "openwave-rag",
         "logger": "src.rag.ingestion", "msg": "...", "run_id": "..."}
    """

    EXTRA_FIELDS = ("run_id", "request_id", "stage", "duration")

    def __init__(self, app_name: str = "openwave-rag"):
        super().__init__()
        self.app_name = app_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "app": self.app_name,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({
            key: getattr(record, key)
            for key in self.EXTRA_FIELDS
            if getattr(record, key, None) is not None
        })
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def parse_module_levels(value: Optional[str]) -> Dict[str, int]:
    """
    Parse "logger=LEVEL,logger=LEVEL" into a mapping.

    Unknown level names and malformed entries are ignored.
    """
    levels = {}
    for item in (value or "").split(","):
        name, sep, level = item.partition("=")
        if not sep or not name.strip():
            continue
        parsed = logging.getLevelName(level.strip().upper())
        if isinstance(parsed, int):
            levels[name.strip()] = parsed
    return levels


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    module_levels: Optional[Dict[str, int]] = None,
    app_name: str = "openwave-rag",
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger.

    Replaces any handlers already installed, so calling it twice
    (API reload, repeated CLI invocations in tests) does not duplicate
    output.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    if json_output:
        formatter = JSONFormatter(app_name)
    else:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count,
        ))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name, module_level in (module_levels or {}).items():
        logging.getLogger(name).setLevel(module_level)

    root.debug(f"Logging configured: level={level} json={json_output} file={log_file or 'none'}")


def configure_logging(settings) -> None:
    """setup_logging() from a Settings object."""
    setup_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_logs,
        log_file=settings.logging.log_file,
        module_levels=parse_module_levels(settings.logging.module_levels),
        app_name=settings.app_name,
    )
