"""
Logging configuration for the commerce console.

One package logger ("commerce") writing to stdout, level taken from the
COMMERCE_LOG_LEVEL environment variable (default: INFO).
"""
import logging
import os
import sys

LOG_LEVEL = os.getenv("COMMERCE_LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("commerce")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# Streamlit reruns scripts; keep records out of the root logger
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional name for the logger (will be appended to 'commerce')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"commerce.{name}")
    return logger
