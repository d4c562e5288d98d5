# src/app/logging_config.py
"""
Central logging configuration for the relay.

Call configure_logging() from the entrypoint once, for example:

    from app.logging_config import configure_logging
    configure_logging("DEBUG")

After that, lifecycle, scheduler and console-mirror logs are visible on
stdout (or stderr when the terminal dashboard owns stdout).
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO, Union


def configure_logging(level: Union[int, str] = logging.INFO, stream: TextIO = sys.stdout) -> None:
    """
    Configure root logging if no handlers are attached yet.

    Args:
        level: logging level, numeric or by name ("INFO", "DEBUG", ...)
        stream: where log lines go
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO

    root = logging.getLogger()

    # Don't duplicate handlers if someone already configured logging.
    if root.handlers:
        root.setLevel(level)
        return

    handler = logging.StreamHandler(stream=stream)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)

    # aiohttp logs every request at INFO
    logging.getLogger("aiohttp.access").setLevel(max(level, logging.WARNING))
