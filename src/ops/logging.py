"""
Logging setup.
"""

from __future__ import annotations

import logging
import os
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_path: Optional[str], log_level: str) -> None:
    """
    Configure the root logger to write to stderr and, if log_path is set,
    to a log file (its directory is created when missing).
    """
    handlers = [logging.StreamHandler()]
    if log_path:
        log_dir = os.path.dirname(log_path)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
