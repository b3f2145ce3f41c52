"""Process-wide logging setup."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Attach a console handler to the ``cryptoplace`` logger tree (idempotent)."""
    root = logging.getLogger("cryptoplace")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if any(getattr(h, "_cryptoplace", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._cryptoplace = True  # type: ignore[attr-defined]
    root.addHandler(handler)
