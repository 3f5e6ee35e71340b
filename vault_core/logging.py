"""
Centralized logging configuration for backup-vault.
Initializes loguru and intercepts standard library logging.
"""

import logging
import sys

from loguru import logger


class InterceptHandler(logging.Handler):
    """
    Forward standard library log records (minio, celery, urllib3) to loguru.
    See: https://loguru.readthedocs.io/en/stable/overview.html#entirely-compatible-with-standard-logging
    """

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO"):
    """
    Configures loguru to handle all logs and output them to stdout.
    """
    logger.remove()

    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
        colorize=sys.stdout.isatty(),
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in ["celery", "celery.task", "urllib3"]:
        _logger = logging.getLogger(name)
        _logger.handlers = [InterceptHandler()]
        _logger.propagate = False

    logger.info("Logging initialized with Loguru.")
