"""
logging_config.py: centralized logging configuration for the storefront API.

All modules obtain their logger through ``logging.getLogger(__name__)``; this
module only wires the handlers once at application startup.
"""

import logging
import sys

from storefront.core.config import LOG_LEVEL, LOG_FILE


def setup_logging():
    """
    Configures the global logging system for the application.

    The configuration includes:
        - Log level: taken from LOG_LEVEL (default INFO)
        - Log format: timestamp, logger name, level and message
        - Output destinations:
            1. File: LOG_FILE (persistent log), skipped when LOG_FILE is empty
            2. Console (stdout), container friendly
        - Reduced verbosity for third-party libraries
    """
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    if LOG_FILE:
        handlers.append(logging.FileHandler(LOG_FILE))

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format=log_format,
        handlers=handlers,
    )

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
