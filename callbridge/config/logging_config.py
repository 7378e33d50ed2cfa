"""
Configure logging for the application.

Every module gets its logger from ``configure_logging(name)``. Handlers,
format, level and rotation come from a ``LoggingConfig``; when none is passed
it is read from the ``LOG_*`` environment variables (see
``env_loader.load_logging_config``).
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from callbridge.config.constants import LOGGER_NAME
from callbridge.config.env_loader import load_logging_config
from callbridge.config.models import LoggingConfig


def _file_handler(config: LoggingConfig, formatter: logging.Formatter) -> RotatingFileHandler:
    config.log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        config.log_dir / config.log_filename,
        maxBytes=config.max_log_size,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def configure_logging(name: str = LOGGER_NAME, config: Optional[LoggingConfig] = None):
    """
    Configure a named logger with console and rotating file handlers.

    Args:
        name: Logger name
        config: Logging settings; read from the environment when omitted

    Returns:
        logging.Logger: The configured logger instance
    """
    config = config or load_logging_config()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config.level.value, logging.INFO))

    # Remove existing handlers if any
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(config.format)

    if config.console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if config.file_output:
        try:
            logger.addHandler(_file_handler(config, formatter))
        except OSError as e:
            logger.warning(f"Could not set up file logging in {config.log_dir}: {e}")

    # Prevent log propagation to root logger
    logger.propagate = False

    return logger
