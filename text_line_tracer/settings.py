"""Logging and runtime switches for the text line tracer."""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL = os.getenv("TEXT_LINE_TRACER_LOG_LEVEL", "WARNING").upper()
SHOW_PROGRESS = os.getenv("TEXT_LINE_TRACER_PROGRESS", "0").lower() in ("1", "true", "yes")


def _configure_logger() -> logging.Logger:
    logger = logging.getLogger("text_line_tracer")
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.WARNING))

    # Avoid duplicate handlers when re-imported
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(funcName)s] - %(message)s"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


logger = _configure_logger()
