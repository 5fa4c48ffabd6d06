"""Logging setup for tcpprobe.

Log records go to stderr so stdout only carries the measurement lines
and the summary.
"""

import logging
import sys
from typing import Optional, TextIO

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: int = logging.INFO, stream: Optional[TextIO] = None) -> logging.Logger:
    """Configure and return the tcpprobe logger."""
    logger = logging.getLogger("tcpprobe")
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
