"""Logging setup for modeflow hosts.

Library modules only create loggers (``logging.getLogger(__name__)``);
the host decides where records go. Mode transitions log at INFO under
``modeflow.modes.transitions``, tool dispatch and model timing at DEBUG,
and failed turns at WARNING.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Client libraries that log every request at INFO/DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(level: Optional[int] = None, quiet: bool = False) -> None:
    """Send modeflow and client logs to stderr.

    Args:
        level: Log level for the root logger. If None, uses MODEFLOW_LOG_LEVEL.
        quiet: If True, only show warnings and errors (the chat CLI default,
            since it prints mode changes itself)
    """
    if level is None:
        from .config import get_settings
        level = get_settings().log_level_int

    if quiet:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stderr,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
