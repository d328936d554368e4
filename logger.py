# logger.py - Centralized logging configuration
import os
import logging
from logging.handlers import RotatingFileHandler

LOGS_DIR = os.environ.get("LOGS_DIR", "logs")

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]"
CONSOLE_FORMAT = "%(name)s - %(levelname)s - %(message)s"

MAX_LOG_BYTES = 10240
LOG_BACKUPS = 10


def log_path(filename, logs_dir=None):
    logs_dir = logs_dir or LOGS_DIR
    os.makedirs(logs_dir, exist_ok=True)
    return os.path.join(logs_dir, filename)


def rotating_file_handler(log_file, level=logging.INFO):
    """Size-rotated file handler shared by the app log and the service loggers."""
    handler = RotatingFileHandler(log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def console_handler(level=logging.DEBUG):
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def setup_logger(name, log_file=None, level=logging.INFO):
    """Set up a logger with file rotation"""
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        logger.setLevel(level)
        logger.addHandler(rotating_file_handler(log_file or log_path(f"{name}.log"), level))

        # operators running repairs outside production see output on the terminal
        if os.environ.get("FLASK_ENV") != "production":
            logger.addHandler(console_handler())

    return logger


# Create global loggers
commission_logger = setup_logger("commission")
repair_logger = setup_logger("repair")
