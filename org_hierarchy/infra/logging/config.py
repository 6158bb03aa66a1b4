"""Logging configuration setup.

Provides logging configuration using:
- dictConfig for formatters and the root logger
- QueueHandler + QueueListener so handlers never block the event loop
- All handlers behind the root logger (child loggers propagate)
- JSONL or plain-text output, selected by LOG_JSON
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from org_hierarchy.core.settings.logs import LoggingSettings

_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False
logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def shutdown() -> None:
    """Stop the QueueListener, flushing pending records.

    Registered with atexit; safe to call more than once.
    """
    global _listener

    if _listener is not None:
        _listener.stop()
        _listener = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from org_hierarchy.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = {**settings_obj.to_logging_kwargs(), **configure_kwargs}
    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    console_enabled: bool = True,
    file_path: str | Path | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    capture_warnings: bool = True,
    service_name: str = "org-hierarchy",
) -> None:
    """Configure logging with dictConfig and the QueueHandler pattern.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_logs: Emit JSONL instead of plain text.
        console_enabled: Attach a stderr handler.
        file_path: Path of a rotating log file, or None.
        file_max_bytes: Maximum log file size before rotation.
        file_backup_count: Number of rotated log files to keep.
        capture_warnings: Forward Python warnings to logging.
        service_name: Static ``service`` field on JSON records.
    """
    global _listener

    if capture_warnings:
        logging.captureWarnings(True)

    formatter_name = "json" if json_logs else "text"
    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "org_hierarchy.infra.logging.formatters.JSONFormatter",
                "static": {"service": service_name},
            },
            "text": {
                "format": TEXT_FORMAT,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "root": {"level": log_level.upper(), "handlers": []},
    }
    logging.config.dictConfig(logging_config)

    # Handlers live behind the listener; the root logger only gets the queue
    handlers = _build_handlers(
        formatter=_formatter_from_config(logging_config["formatters"][formatter_name]),
        console_enabled=console_enabled,
        file_path=Path(file_path) if file_path else None,
        file_max_bytes=file_max_bytes,
        file_backup_count=file_backup_count,
    )

    shutdown()
    queue: Queue[logging.LogRecord] = Queue(-1)
    root = logging.getLogger()
    root.addHandler(QueueHandler(queue))
    _listener = QueueListener(queue, *handlers, respect_handler_level=True)
    _listener.start()

    logger.debug(
        "Logging configured",
        extra={"level": log_level, "json": json_logs, "file": str(file_path) if file_path else None},
    )


def _formatter_from_config(config: dict[str, Any]) -> logging.Formatter:
    if "()" in config:
        from org_hierarchy.infra.logging.formatters import JSONFormatter

        return JSONFormatter(static=config.get("static"))
    return logging.Formatter(config["format"], datefmt=config.get("datefmt"))


def _build_handlers(
    *,
    formatter: logging.Formatter,
    console_enabled: bool,
    file_path: Path | None,
    file_max_bytes: int,
    file_backup_count: int,
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if console_enabled:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        handlers.append(console)

    if file_path:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    return handlers


atexit.register(shutdown)
