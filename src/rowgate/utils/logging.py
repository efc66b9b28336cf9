"""Logging helpers shared by every rowgate module."""

import logging
from typing import Optional

ROOT_LOGGER_NAME = "rowgate"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger under the ``rowgate`` hierarchy.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        Logger whose records propagate to the ``rowgate`` root logger
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(level: int = logging.INFO, fmt: Optional[str] = None) -> logging.Logger:
    """
    Attach a single stream handler to the ``rowgate`` logger.

    Calling this more than once only adjusts the level; handlers are not duplicated.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    if not any(getattr(h, "_rowgate_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
        handler._rowgate_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root
