# logger.py - Centralized logging configuration
import os
import logging
from logging.handlers import RotatingFileHandler

from .config import Config


def setup_logger(name, log_file=None, level=None):
    """Set up a logger with file rotation"""
    level = level or getattr(logging, Config.LOG_LEVEL, logging.INFO)

    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        logger.setLevel(level)

        # Read-only filesystems (serverless) get console logging only
        try:
            if not log_file:
                os.makedirs(Config.LOG_DIR, exist_ok=True)
                log_file = os.path.join(Config.LOG_DIR, f"{name}.log")
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10240,
                backupCount=10
            )
        except OSError:
            file_handler = None

        if file_handler:
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]"
            ))
            file_handler.setLevel(level)
            logger.addHandler(file_handler)

        # Console handler for development, or when there is no log file
        if Config.APP_ENV != "production" or file_handler is None:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(logging.Formatter(
                "%(name)s - %(levelname)s - %(message)s"
            ))
            logger.addHandler(console_handler)

        if file_handler is None:
            logger.warning(f"Cannot write logs to {log_file or Config.LOG_DIR}; logging to console only")

    return logger
