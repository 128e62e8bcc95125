import logging
import os
import sys
import time
from typing import Optional, TextIO

LOGGER_NAME = "arb_calc"
LEVEL_ENV = "ARB_CALC_LOG_LEVEL"


def new_logger(stream: Optional[TextIO] = None, level: Optional[str] = None) -> logging.Logger:
    """Configure the package logger. Records go to stderr; stdout carries responses."""
    log = logging.getLogger(LOGGER_NAME)
    level_name = (level or os.getenv(LEVEL_ENV) or "WARNING").upper()
    log.setLevel(getattr(logging, level_name, logging.WARNING))
    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        "%Y-%m-%dT%H:%M:%SZ",
    )
    fmt.converter = time.gmtime  # UTC
    for handler in list(log.handlers):
        log.removeHandler(handler)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(fmt)
    log.addHandler(handler)
    log.propagate = False
    return log


LOG = logging.getLogger(LOGGER_NAME)
