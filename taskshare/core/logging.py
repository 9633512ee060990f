"""
Logging setup: one stderr handler at the configured level.
Call once from the application factory, before the first log line.
"""
from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    # Avoid duplicate handlers when the app factory runs more than once (tests, reload)
    for handler in list(root.handlers):
        if getattr(handler, "_taskshare", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler._taskshare = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    logging.captureWarnings(True)
