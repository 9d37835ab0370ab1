import logging
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(name: str = "app", log_level: str = None) -> logging.Logger:
    """
    Sets up the application logger with console (StreamHandler) output.
    Every module logs through logging.getLogger(__name__), so configuring
    the "app" package logger covers the whole application.
    """
    level = logging.getLevelName((log_level or settings.LOG_LEVEL).upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent adding handlers multiple times if logger is already set up
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    return logger
