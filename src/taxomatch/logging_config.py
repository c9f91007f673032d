"""Logging setup for the TaxoMatch command-line interface."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    Args:
        log_level: Name of the logging level (DEBUG, INFO, ...)
        log_file: Optional file to write logs to, in addition to the console
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # Keep third-party HTTP chatter out of INFO output
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
