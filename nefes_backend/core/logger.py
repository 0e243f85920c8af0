import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys

LOG_FILE_NAME = "app.log"
LOG_FORMAT = "%(levelname)s | %(asctime)s | %(name)s | %(message)s"


def _log_dir() -> Path:
    # Read straight from the environment: loggers are created at import time,
    # before settings are loaded.
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _log_level() -> int:
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), None)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)

    # Prevent duplicate handlers if the logger is reused
    if not logger.handlers:
        level = _log_level()
        formatter = logging.Formatter(LOG_FORMAT)

        file_handler = RotatingFileHandler(
            _log_dir() / LOG_FILE_NAME, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)

        # Customer names are Turkish; force UTF-8 on the console as well
        try:
            console_stream = open(sys.stdout.fileno(), mode="w", encoding="utf-8", closefd=False)
        except Exception:
            # stdout has no file descriptor (e.g. captured under pytest)
            console_stream = sys.stdout

        console_handler = logging.StreamHandler(console_stream)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)

        logger.addHandler(file_handler)
        logger.addHandler(console_handler)
        logger.setLevel(level)
        logger.propagate = False

    return logger
