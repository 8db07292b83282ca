"""
logging_config.py — Centralized Logging Configuration for Stock Ledger

Sets up Loguru as the single logging backend. Intercepts Python's stdlib
logging module so every getLogger("stockledger.*") call in the services
routes through Loguru with one consistent format.

Business Rules:
- All logs go through Loguru (no direct print())
- JSON lines when LOG_JSON is set (container / production)
- Human-readable colorized format otherwise
- Third-party chatter (httpx, sqlalchemy.engine) is capped at WARNING
- LOG_FILE adds a rotating JSON file sink (20 MB, 14 days, gz)

Called by: stockledger/main.py (lifespan startup)
Depends on: stockledger/config.py (log_level, log_json, log_file)
"""

import logging
import sys

from loguru import logger

from .config import settings

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


def setup_logging(level: str | None = None, json_output: bool | None = None,
                  log_file: str | None = None) -> None:
    """Configure Loguru and intercept stdlib logging.

    Call once at app startup, before any other imports that log.
    """
    logger.remove()

    log_level = (level or settings.log_level).upper()
    serialize = settings.log_json if json_output is None else json_output

    if serialize:
        logger.add(sys.stdout, level=log_level, format="{message}", serialize=True)
    else:
        logger.add(
            sys.stdout,
            level=log_level,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "{message}"
            ),
            colorize=True,
        )

    log_path = settings.log_file if log_file is None else log_file
    if log_path:
        logger.add(log_path, level=log_level, rotation="20 MB", retention="14 days",
                   compression="gz", serialize=True)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Logging configured", level=log_level, json=serialize)


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames from stdlib logging internals to find the real caller
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )
