"""Process-wide logging setup."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single root handler; repeated calls only adjust the level."""

    root = logging.getLogger()
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    if not any(getattr(handler, "_rendezvous", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._rendezvous = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    root.setLevel(resolved)
