"""Process-wide logging configuration for the CLI and API."""

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# httpx logs every request at INFO, including query strings.
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """Configure root logging once for the process.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
