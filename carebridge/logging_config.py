"""Logging configuration for CareBridge Reminders."""

import logging
import sys

logger = logging.getLogger("carebridge")


def configure_logging(level: int = logging.INFO) -> None:
    """Set up logging configuration."""

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear all existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '[%(asctime)s][%(levelname)s] %(name)s: %(message)s'
    )
    console_handler.setFormatter(formatter)

    root_logger.addHandler(console_handler)

    logger.handlers.clear()
    logger.addHandler(console_handler)
    logger.setLevel(level)
    logger.propagate = False

    # Chatty HTTP client loggers only at warning level
    for logger_name in ['httpx', 'httpcore', 'hpack']:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str = "carebridge") -> logging.Logger:
    """Get logger instance."""
    return logging.getLogger(name)
