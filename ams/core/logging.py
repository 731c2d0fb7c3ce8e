from __future__ import annotations

import logging

from ams import config

FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Install a single stream handler on the `ams` logger.

    Safe to call more than once (CLI entry point, API startup, scheduler);
    handlers are only added the first time.
    """
    logger = logging.getLogger("ams")
    logger.setLevel((level or config.LOG_LEVEL).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(FORMAT))
        logger.addHandler(handler)
    return logger
