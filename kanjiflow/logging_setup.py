"""Loguru sink configuration shared by the CLI entry points."""

from __future__ import annotations

import sys

from loguru import logger


def configure_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """
    Replace loguru's default sink.

    Args:
        level: Minimum level for the stderr sink
        log_file: Optional path for a rotating DEBUG-level file sink
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            rotation="5 MB",
            retention=3,
            encoding="utf-8",
        )
