"""
Logging helpers shared across the application.
"""
import logging
import sys

from iam.core import config

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root = logging.getLogger("iam")
    root.addHandler(handler)
    root.setLevel(config.LOG_LEVEL)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the ``iam`` namespace.

    Usage:
        log = get_logger(__name__)
    """
    _configure_root()
    if not name.startswith("iam"):
        name = f"iam.{name}"
    return logging.getLogger(name)
