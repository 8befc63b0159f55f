"""
Logging configuration for the consultation engine and its API.

Modules log through ``logging.getLogger(__name__)``; this module only
attaches handlers to the application namespaces once at startup.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Namespaces owned by the application: the engine package and the FastAPI app.
APP_LOGGERS = ("medconsult", "api")

# Client libraries that log every request at INFO; status polling makes them noisy.
QUIET_LOGGERS = ("httpx", "httpcore", "openai")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> list[logging.Logger]:
    """
    Attach console (and optional file) handlers to the application loggers.

    Calling it again replaces the handlers instead of duplicating them.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL or INFO.
        log_file: Optional file path to also write logs to.

    Returns:
        The configured application loggers
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    level_num = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setLevel(level_num)
        handler.setFormatter(formatter)

    loggers = []
    for name in APP_LOGGERS:
        logger = logging.getLogger(name)
        for old in logger.handlers:
            old.close()
        logger.handlers = list(handlers)
        logger.setLevel(level_num)
        logger.propagate = False
        loggers.append(logger)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level_num, logging.WARNING))

    return loggers
