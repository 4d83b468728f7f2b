import logging
import os
from logging.handlers import RotatingFileHandler

from .config import LOG_FILE, LOGGER_NAME
from .utils import ensure_dir


def setup_logger(log_file: str | None = None) -> logging.Logger:
    log_file = log_file or LOG_FILE
    ensure_dir(os.path.dirname(log_file))
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        handler = RotatingFileHandler(
            log_file,
            maxBytes=1_000_000,
            backupCount=3,
            encoding="utf-8",
        )
        fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the app logger, so module records reach the rotating file."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
