#!/usr/bin/env python3
"""
Common utilities shared across frogfix commands.
"""

import argparse
import logging
import sys
from pathlib import Path

from frogfix.constants import LOG_FORMAT

# Libraries whose INFO/DEBUG chatter drowns out remediation progress
NOISY_LOGGERS = ("git", "urllib3")


def _resolve_level(log_level: str | int) -> int:
    if isinstance(log_level, int):
        return log_level
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str | int = "INFO", log_file: str | Path | None = None) -> None:
    """Configure root logging for a frogfix run.

    Output goes to stdout only. A file handler is added when ``log_file`` is
    given; nothing is written into the working directory otherwise, because
    that directory is usually the checkout being remediated.
    """
    level = _resolve_level(log_level)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add --log-level and --log-file to a parser."""
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--log-file", help="Also write logs to this file (default: console only)")
