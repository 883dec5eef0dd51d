"""Logging setup for the cockpit API and client."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger with a single stream handler.

    Safe to call more than once; an existing cockpit handler is replaced
    rather than duplicated.
    """
    root = logging.getLogger()
    root.setLevel((level or "INFO").upper())

    for h in list(root.handlers):
        if getattr(h, "_cockpit", False):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._cockpit = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return root
