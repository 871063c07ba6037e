import os
import sys
from datetime import datetime
from typing import Any

import pytz
from loguru import logger
from loguru._logger import Logger

from catalog.core.config import settings


def dynamic_formatter(record: Any) -> str:
    base = "[{time:HH:mm:ss}] [{level}] {module}:{function}:{line} - {message}"

    extras = record.get("extra", {})
    if extras:
        base += " ("
        for key, value in extras.items():
            base += f"{key}={value}, "
        base += ")\n"
    else:
        base += "\n"

    if record["exception"]:
        base += "{exception}"

    return base


def dynamic_console_formatter(record: Any) -> str:
    base = "[<green>{time:HH:mm:ss}</green>] <level>[{level}]</level> {module}:{function}:<blue>{line}</blue> - {message}\n"

    if record["exception"]:
        base += "{exception}"

    return base


def _add_file_sinks(log_path: str) -> None:
    file_options: dict[str, Any] = {
        "format": dynamic_formatter,
        "rotation": "00:00",  # Rotate daily at midnight
        "compression": "zip",
        "enqueue": True,
        "backtrace": True,
        "diagnose": settings.DEBUG,
    }

    if settings.DEBUG:
        logger.add(
            os.path.join(log_path, "debug.log"),
            level="DEBUG",
            retention="7 days",
            **file_options,
        )

    logger.add(
        os.path.join(log_path, "error.log"),
        level="ERROR",
        retention="30 days",
        **file_options,
    )
    logger.add(
        os.path.join(log_path, "info.log"),
        level="INFO",
        retention="30 days",
        **file_options,
    )


def setup_logger(name: str, log_dir: str | None = None) -> Logger:
    logger.remove()  # Remove default handler

    if settings.LOG_TO_FILES:
        today = datetime.now(pytz.timezone(settings.TIMEZONE)).strftime("%Y-%m-%d")
        log_path = os.path.join(log_dir or settings.LOG_DIR, today, name)
        os.makedirs(log_path, exist_ok=True)
        _add_file_sinks(log_path)

    logger.add(
        sys.stderr,
        format=dynamic_console_formatter,
        level="DEBUG" if settings.DEBUG else "INFO",
        enqueue=True,
        backtrace=True,
        diagnose=settings.DEBUG,
        colorize=True,
    )

    return logger  # type: ignore
