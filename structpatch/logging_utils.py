"""Logging configuration for the structpatch scripts."""

import logging
import os
from typing import Optional

_LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once; the library itself never calls this."""
    if logging.getLogger().handlers:
        return

    log_level = level or os.getenv("LOG_LEVEL", "WARNING")
    logging.basicConfig(level=log_level.upper(), format=_LOG_FORMAT)
