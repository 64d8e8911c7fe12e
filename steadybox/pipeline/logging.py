"""Logging helpers for the overlay pipeline."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{thread.name}</cyan> | <cyan>{name}:{function}:{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {process}:{thread.name} | "
    "{name}:{function}:{line} | {message}"
)


def configure_logging(
    log_level: str = "INFO",
    log_dir: str | None = "logs",
    *,
    json_logs: bool = False,
) -> None:
    """Configure loguru sinks; ``STEADYBOX_LOG_LEVEL`` overrides the level."""
    log_level = os.getenv("STEADYBOX_LOG_LEVEL", log_level).upper()

    logger.remove()
    logger.add(
        sink=sys.stdout,
        format=CONSOLE_FORMAT,
        level=log_level,
        enqueue=True,
    )
    if log_dir is None:
        return

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_path = Path(log_dir) / "steadybox_{time:YYYY-MM-DD}.log"
    logger.add(
        str(log_path),
        rotation="10 MB",
        retention="7 days",
        level=log_level,
        format=FILE_FORMAT,
        enqueue=True,
    )
    if json_logs:
        json_path = Path(log_dir) / "steadybox_{time:YYYY-MM-DD}.jsonl"
        logger.add(
            str(json_path),
            rotation="10 MB",
            retention="7 days",
            level=log_level,
            serialize=True,
            enqueue=True,
        )
