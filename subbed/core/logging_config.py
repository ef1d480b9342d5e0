"""Structured logging configuration for the feed service."""

import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

ROOT_LOGGER_NAME = "subbed"


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    rich_tracebacks: bool = True,
) -> logging.Logger:
    """
    Configure structured logging for the application.

    Every module logs through ``logging.getLogger(__name__)``; since all
    modules live under the ``subbed`` package their records propagate to the
    logger configured here.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        rich_tracebacks: Enable rich traceback formatting

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=rich_tracebacks,
        tracebacks_show_locals=(level.upper() == "DEBUG"),
        markup=False,
    )
    rich_handler.setLevel(getattr(logging, level.upper()))
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    # Prevent logging to root logger
    logger.propagate = False

    logger.debug("Logging initialized (level=%s)", level)

    return logger


def log_api_request(
    logger_instance: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: str | None = None,
    request_id: str | None = None,
) -> None:
    """
    Log HTTP API request in structured format.

    Args:
        logger_instance: Logger to use
        method: HTTP method
        path: Request path
        status_code: Response status code
        duration_ms: Request duration in milliseconds
        client_ip: Optional client IP address
        request_id: Optional request identifier
    """
    log_level = logging.INFO if status_code < 400 else logging.WARNING

    extra: dict[str, Any] = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
    }
    if client_ip:
        extra["client_ip"] = client_ip
    if request_id:
        extra["request_id"] = request_id

    message = f"{method} {path} {status_code} {duration_ms:.1f}ms"
    logger_instance.log(log_level, message, extra=extra)


def log_channel_fetch_event(
    logger_instance: logging.Logger,
    channel_id: str,
    event: str,
    items: int | None = None,
    feed_type: str | None = None,
    error: str | None = None,
) -> None:
    """
    Log per-channel feed fetch events.

    Args:
        logger_instance: Logger to use
        channel_id: YouTube channel ID
        event: Event type (completed, failed)
        items: Number of accepted entries
        feed_type: Requested feed type filter
        error: Error message if failed
    """
    extra: dict[str, Any] = {
        "channel_id": channel_id,
        "event": event,
    }

    if items is not None:
        extra["items"] = items
    if feed_type:
        extra["feed_type"] = feed_type
    if error:
        extra["error"] = error

    if event == "failed":
        logger_instance.warning(
            "Channel feed failed: %s (%s)", channel_id, error or "unknown error", extra=extra
        )
    else:
        logger_instance.debug(
            "Channel feed %s: %s (%s items)", event, channel_id, items, extra=extra
        )
