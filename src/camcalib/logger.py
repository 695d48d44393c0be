"""
Package logging.

Modules get their logger with:

    import camcalib.logger
    logger = camcalib.logger.get(__name__)

Level is read once from CAMCALIB_LOG_LEVEL (default INFO).
"""

from __future__ import annotations

import logging
import os

_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s:%(lineno)d | %(message)s"
_ROOT_NAME = "camcalib"

_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return

    root = logging.getLogger(_ROOT_NAME)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(os.environ.get("CAMCALIB_LOG_LEVEL", "INFO").upper())
    _configured = True


def get(name: str) -> logging.Logger:
    """Return a logger under the camcalib hierarchy."""
    _configure_root()
    if name != _ROOT_NAME and not name.startswith(_ROOT_NAME + "."):
        name = f"{_ROOT_NAME}.{name}"
    return logging.getLogger(name)


def set_level(level: int | str) -> None:
    """Change the level of every camcalib logger."""
    _configure_root()
    if isinstance(level, str):
        level = level.upper()
    logging.getLogger(_ROOT_NAME).setLevel(level)
