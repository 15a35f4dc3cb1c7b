"""
Logging setup for the voxelamming-send command.

Library modules log through the stdlib ``logging`` module; the command routes
those records into loguru, which owns the sinks. Sends happen on dispatcher
threads, so console lines carry the thread name.
"""

import logging
import sys
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULT_LOG_FILENAME = "voxelamming.log"
DEFAULT_LOG_ROTATION = "10 MB"
DEFAULT_LOG_RETENTION = 20
CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{thread.name}</cyan> | {message}"
)
RotationRule = str | int | float | timedelta | Callable[[Any, Any], bool]
RetentionRule = str | int | float | timedelta | Callable[[list[Any]], Any]


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except (ValueError, TypeError):
            level = record.levelno

        # Walk out of the logging package so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def log_file_path(log_dir: Path | str) -> Path:
    return Path(log_dir) / DEFAULT_LOG_FILENAME


def _add_console_sink(level: str, as_json: bool) -> None:
    options: dict[str, Any] = {"level": level.upper(), "enqueue": True, "diagnose": False}
    if as_json:
        options["serialize"] = True
    else:
        options["format"] = CONSOLE_FORMAT
    logger.add(sys.stderr, **options)


def _add_file_sink(
    log_dir: Path, rotation: RotationRule | None, retention: RetentionRule | None
) -> Path | None:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error(f"Cannot create log directory {log_dir}, logging to console only: {exc}")
        return None

    path = log_file_path(log_dir)
    logger.add(
        path,
        level="DEBUG",
        serialize=True,
        rotation=DEFAULT_LOG_ROTATION if rotation is None else rotation,
        retention=DEFAULT_LOG_RETENTION if retention is None else retention,
        enqueue=True,
        diagnose=False,
    )
    return path


def configure_logging(
    log_dir: Path | str | None,
    console_level: str = "INFO",
    console_json: bool = False,
    rotation: RotationRule | None = None,
    retention: RetentionRule | None = None,
) -> Path | None:
    """
    Install the loguru sinks and capture stdlib logging.

    Args:
        log_dir: Directory for ``voxelamming.log``; None disables the file sink.
        console_level: Minimum level printed on stderr.
        console_json: Print JSON records on stderr instead of coloured text.
        rotation: loguru rotation rule for the file sink (default ``10 MB``).
        retention: loguru retention rule for the file sink (default 20 files).

    Returns:
        The log file path, or None when no file sink was installed.
    """
    logger.remove()
    _add_console_sink(console_level, console_json)

    log_file = None
    if log_dir is not None:
        log_file = _add_file_sink(Path(log_dir), rotation, retention)
        if log_file is not None:
            logger.info(f"Writing JSON logs to {log_file}")

    logging.basicConfig(handlers=[InterceptHandler()], level=logging.NOTSET, force=True)
    logging.captureWarnings(True)
    return log_file


def shutdown_logging() -> None:
    """Flush queued records and detach all sinks."""
    logger.complete()
    logger.remove()
