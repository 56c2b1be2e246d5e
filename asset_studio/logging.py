import logging
from enum import Enum

LOG_FORMAT_DEBUG = "%(levelname)s:%(message)s:%(pathname)s:%(funcName)s:%(lineno)d"


class LogLevels(str, Enum):
    info = "INFO"
    warn = "WARN"
    error = "ERROR"
    debug = "DEBUG"


def configure_logging(log_level: str | LogLevels = LogLevels.error) -> None:
    """Configure the root logger used across the studio."""
    level = log_level.value if isinstance(log_level, LogLevels) else str(log_level)
    level = level.upper()
    log_levels = [lvl.value for lvl in LogLevels]

    if level not in log_levels:
        logging.basicConfig(level=LogLevels.error.value)
        return

    if level == LogLevels.debug.value:
        logging.basicConfig(level=level, format=LOG_FORMAT_DEBUG)
        return

    logging.basicConfig(level=level)
