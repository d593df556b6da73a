"""
Logging configuration for full-sync processes.

Usage:
    from utils.logging import setup_logging, get_logger

    setup_logging(level="INFO", json_format=True)
    logger = get_logger(__name__)
    logger.info("Chunk sent", extra={"module_name": "posts", "last_sent": 91})
"""

from .config import configure_from_env, get_logger, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter, extra_fields

__all__ = [
    "setup_logging",
    "get_logger",
    "shutdown_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "extra_fields",
]
