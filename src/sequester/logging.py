"""Logger factory shared by sequester modules."""

import logging
import os

LOG_LEVEL_ENV_VAR: str = "SEQUESTER_LOG_LEVEL"
_LOG_FORMAT: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger for one sequester module.

    The level defaults to ``WARNING`` and can be overridden with the
    ``SEQUESTER_LOG_LEVEL`` environment variable.

    :param name: Logger name, usually ``__name__``.
    :returns: Logger with one stream handler attached.
    """
    logger: logging.Logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)

    default_level: int = logging.WARNING
    level_name: str = os.getenv(LOG_LEVEL_ENV_VAR, logging.getLevelName(default_level))
    level: object = getattr(logging, level_name.upper(), None)
    if isinstance(level, int) is False:
        level = default_level
    logger.setLevel(level)
    return logger
