#!/usr/bin/env python3
"""
Logging configuration for the pruning service.

Human-readable coloured output for development, one JSON object per record
for production. Module loggers live under the ``utxo_pruner`` namespace and
propagate to the handlers installed here.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOG_MODES = ("development", "production")


def _extra_fields(record: logging.LogRecord) -> dict:
    """chain/network/txid context attached via extra={"extra_fields": {...}}"""
    return getattr(record, "extra_fields", None) or {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        log_data.update(_extra_fields(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Coloured single-line output for development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, colored: bool = True):
        super().__init__()
        self.colored = colored

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET) if self.colored else ""
        reset = self.RESET if self.colored else ""

        # [TIMESTAMP] LEVEL - logger - message [key=value ...]
        formatted = (
            f"{color}[{self.formatTime(record, '%Y-%m-%d %H:%M:%S')}] "
            f"{record.levelname:<8}{reset} - {record.name} - "
            f"{record.getMessage()}"
        )
        context = _extra_fields(record)
        if context:
            formatted += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(
    name: str = "utxo_pruner",
    level: str = "INFO",
    mode: str = "development",
    log_dir: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Setup logging configuration for the service

    Args:
        name: Logger name (package namespace)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        mode: "development" for human-readable, "production" for JSON
        log_dir: Directory for rotating log files (None: console only)
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup log files to keep

    Returns:
        Configured logger instance
    """
    if mode not in LOG_MODES:
        raise ValueError(f"Unknown log mode {mode!r}, expected one of {LOG_MODES}")

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    if mode == "production":
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(HumanReadableFormatter())
    logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{name}.log", maxBytes=max_bytes, backupCount=backup_count
        )
        if mode == "production":
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(HumanReadableFormatter(colored=False))
        logger.addHandler(file_handler)

    logger.debug(f"Logging initialized: mode={mode}, level={level}, log_dir={log_dir}")

    return logger
