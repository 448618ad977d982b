"""Logging setup: console, rotating pipeline log, and a separate alerts log
that only carries warnings and above, where job pauses land."""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Union

LOGGER_NAME = "reel_scraper"
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5


def resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def _rotating(path: str, level: int, fmt: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT)
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logger(log_dir: str = "logs", level: Union[int, str, None] = None) -> logging.Logger:
    os.makedirs(log_dir, exist_ok=True)
    level = resolve_level(level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    logger.addHandler(_rotating(os.path.join(log_dir, "pipeline.log"), level, fmt))
    logger.addHandler(_rotating(os.path.join(log_dir, "alerts.log"), logging.WARNING, fmt))

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logger
