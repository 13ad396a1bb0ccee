"""Structured JSON logging for the Sidekick sync agent.

Provides audit-friendly logging with contextual fields for queue, upload,
drain and connectivity events. Payload bytes are never logged.

Usage:
    from sidekick.logging import setup_logging, get_logger

    setup_logging("INFO")
    log = get_logger("sidekick.sync")
    log.info("drain_completed", extra={"succeeded": 3, "failed": 0})
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from functools import lru_cache
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pythonjsonlogger import jsonlogger

from sidekick import __version__

# Device identifier, set by setup_logging()
_device_id: str | None = None


class SidekickJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter that adds agent context to all log records."""

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        """Add standard fields to every log record."""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        log_record["agent_version"] = __version__
        if _device_id:
            log_record["device_id"] = _device_id

        if "message" not in log_record and record.getMessage():
            log_record["message"] = record.getMessage()

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        """Format time as ISO 8601."""
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.isoformat()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    device_id: str | None = None,
    max_bytes: int = 10_000_000,  # 10MB
    backup_count: int = 5,
) -> None:
    """Configure root logger with JSON formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path for rotating file handler
        device_id: Identifier of the adjuster's device
        max_bytes: Max size per log file for rotation
        backup_count: Number of backup files to keep
    """
    global _device_id
    if device_id:
        _device_id = device_id

    formatter = SidekickJsonFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # JSON to stderr so stdout stays clean for CLI output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


@lru_cache(maxsize=32)
def get_logger(name: str) -> logging.Logger:
    """Get a named logger.

    Args:
        name: Logger name (e.g., 'sidekick.sync', 'sidekick.connectivity')

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def sync_logger() -> logging.Logger:
    """Get logger for sync/upload events."""
    return get_logger("sidekick.sync")


def connectivity_logger() -> logging.Logger:
    """Get logger for connectivity events."""
    return get_logger("sidekick.connectivity")


# --- Audit Event Functions ---


def log_operation_queued(
    logger: logging.Logger,
    operation_id: str,
    kind: str,
    payload_size: int,
    pending_count: int,
) -> None:
    """Log an operation entering the sync queue.

    Args:
        logger: Logger instance
        operation_id: Queue operation identifier
        kind: Operation kind value (upload_photo, upload_fnol, ...)
        payload_size: Payload size in bytes (0 when absent)
        pending_count: Queue depth after the enqueue
    """
    logger.info(
        "Operation queued",
        extra={
            "event": "operation_queued",
            "operation_id": operation_id,
            "kind": kind,
            "payload_size": payload_size,
            "pending_count": pending_count,
        },
    )


def log_upload_success(
    logger: logging.Logger,
    operation_id: str,
    kind: str,
    remote_id: str | None = None,
) -> None:
    """Log a successful upload of one queued operation."""
    extra = {
        "event": "upload_success",
        "operation_id": operation_id,
        "kind": kind,
    }
    if remote_id:
        extra["remote_id"] = remote_id
    logger.debug("Upload successful", extra=extra)


def log_upload_failed(
    logger: logging.Logger,
    operation_id: str,
    kind: str,
    error: str,
) -> None:
    """Log a failed upload; the operation stays queued.

    Args:
        logger: Logger instance
        operation_id: Queue operation identifier
        kind: Operation kind value
        error: Error message (sanitized - no payload contents)
    """
    logger.warning(
        "Upload failed",
        extra={
            "event": "upload_failed",
            "operation_id": operation_id,
            "kind": kind,
            "error": error,
        },
    )


def log_drain_completed(
    logger: logging.Logger,
    trigger: str,
    succeeded: int,
    failed: int,
    pending_count: int,
) -> None:
    """Log the end of one drain pass."""
    logger.info(
        "Drain completed",
        extra={
            "event": "drain_completed",
            "trigger": trigger,
            "succeeded": succeeded,
            "failed": failed,
            "pending_count": pending_count,
        },
    )


def log_connectivity_change(
    logger: logging.Logger,
    is_connected: bool,
    connection_type: str,
) -> None:
    """Log an online/offline edge."""
    logger.info(
        "Connectivity changed",
        extra={
            "event": "connectivity_change",
            "is_connected": is_connected,
            "connection_type": connection_type,
        },
    )


def log_state_change(
    logger: logging.Logger,
    old_state: str,
    new_state: str,
    trigger: str | None = None,
) -> None:
    """Log a coordinator state transition."""
    extra = {
        "event": "state_change",
        "old_state": old_state,
        "new_state": new_state,
    }
    if trigger:
        extra["trigger"] = trigger
    logger.debug("State changed", extra=extra)
