"""Application logging helpers.

All modules log through ``get_logger``; the level comes from
``MEDIASHELF_LOG_LEVEL`` via the config module.
"""
from __future__ import annotations

import logging
import threading

from mediashelf.config import get_config

_LOCK = threading.Lock()
_FORMAT = "[mediashelf] %(asctime)s %(levelname)s %(name)s %(message)s"


def get_logger(name: str = "mediashelf") -> logging.Logger:
    with _LOCK:
        logger = logging.getLogger(name)
        root = logging.getLogger("mediashelf")
        if not root.handlers:
            level = getattr(logging, get_config().log_level, logging.INFO)
            root.setLevel(level)
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(_FORMAT))
            root.addHandler(handler)
        return logger


__all__ = ["get_logger"]
