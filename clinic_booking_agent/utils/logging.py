"""
Logging setup.
"""

import logging
import sys
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the application."""
    root = logging.getLogger()
    root.setLevel((level or "INFO").upper())
    if not any(getattr(h, "_clinic_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._clinic_handler = True
        root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, e.g. ``get_logger("clinic.booking")``."""
    return logging.getLogger(name)
