"""
Logging configuration for Strong Link Bot.
"""
import logging
import sys
from pathlib import Path
from typing import Optional
import config


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None
) -> logging.Logger:
    """
    Setup logging for the bot process and Celery workers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file; empty string disables the file handler
        log_format: Log format string

    Returns:
        Configured root logger
    """
    log_level = (log_level or config.config.LOG_LEVEL).upper()
    log_file = config.config.LOG_FILE if log_file is None else log_file
    formatter = logging.Formatter(log_format or config.config.LOG_FORMAT)
    level = getattr(logging, log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # python-telegram-bot logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get logger for a specific module (usually __name__)."""
    return logging.getLogger(name)
