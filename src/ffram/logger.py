"""Logging infrastructure for ff-ramdisk."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from ffram.models import LogLevel

__all__ = [
    "configure_logging",
    "generate_log_filename",
    "get_latest_log_file",
    "get_logger",
    "get_logs_directory",
]


def configure_logging(
    log_file_level: LogLevel,
    log_cli_level: LogLevel,
    log_file_path: Path,
) -> None:
    """Configure structlog with dual output: file (JSON) and terminal (console).

    Args:
        log_file_level: Minimum level for file logging
        log_cli_level: Minimum level for terminal display
        log_file_path: Path to log file
    """
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setLevel(log_file_level)

    # stderr keeps log lines out of the way of the live progress display on stdout
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_cli_level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        )
    )
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    root_logger.setLevel(min(log_file_level, log_cli_level))


def get_logger(name: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger with bound context.

    Args:
        name: Logger name (e.g. "ffram.orchestrator" or a job name)
        **context: Additional context to bind (e.g. run_id)

    Returns:
        BoundLogger with context
    """
    logger = structlog.stdlib.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


def generate_log_filename(run_id: str) -> str:
    """Generate log filename for a staging run.

    Format: run-<timestamp>-<run_id>.log
    """
    timestamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    return f"run-{timestamp}-{run_id}.log"


def get_logs_directory() -> Path:
    """Get the logs directory path."""
    return Path.home() / ".local" / "share" / "ff-ramdisk" / "logs"


def get_latest_log_file() -> Path | None:
    """Get the most recent log file, or None if no logs exist."""
    logs_dir = get_logs_directory()
    if not logs_dir.exists():
        return None

    log_files = sorted(logs_dir.glob("run-*.log"), reverse=True)
    return log_files[0] if log_files else None
