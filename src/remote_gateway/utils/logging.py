"""Logging helpers."""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

_LOGGING_CONFIGURED = False
_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"


def configure_logging(level: Union[int, str, None] = None) -> None:
    """Configure the root logger once; later calls only adjust the level.

    The level falls back to ``REMOTE_GATEWAY_LOG_LEVEL`` and then WARNING.
    """
    global _LOGGING_CONFIGURED
    if level is None:
        level = os.getenv("REMOTE_GATEWAY_LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(level=level, format=_LOG_FORMAT)
        _LOGGING_CONFIGURED = True
    else:
        logging.getLogger().setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not _LOGGING_CONFIGURED:
        configure_logging()
    return logging.getLogger(name)
