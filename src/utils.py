"""Logging setup shared by the entry points (app.py, the simulator CLI)."""

from __future__ import annotations

import logging
import sys
from datetime import datetime


def setup_logger(name: str = "src", level: int = logging.INFO) -> logging.Logger:
    """Attach a stdout handler to *name* once; later calls only set the level.

    Library modules log through ``logging.getLogger(__name__)``, so configuring
    the ``src`` logger covers every engine and training module.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        logger.setLevel(level)
        return logger

    logger.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s", "%H:%M:%S")
    handler.setFormatter(fmt)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def timestamp() -> str:
    return datetime.now().isoformat(timespec="seconds")
