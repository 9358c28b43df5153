"""
Shared helpers.
"""
import logging

from app.core import config


_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure_root() -> logging.Logger:
    root = logging.getLogger("app")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(config.LOG_LEVEL)
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger under the "app" hierarchy.

    Usage:
        log = get_logger(__name__)
        log.info("Something happened")
    """
    _configure_root()
    if name == "app" or name.startswith("app."):
        return logging.getLogger(name)
    return logging.getLogger(f"app.{name}")
