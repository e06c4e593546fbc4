"""
Logging setup.

- Console handler on the root logger
- Optional rotating file handler for the LogKeeper logger
- Safe to call more than once (handlers are not duplicated)
"""

from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.config import Settings

FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
_MARKER = "_logkeeper_handler"


def _mk_handler(path: Path, level: int) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FORMAT))
    return handler


def _replace_handler(logger: logging.Logger, handler: logging.Handler) -> None:
    for old in [h for h in logger.handlers if getattr(h, _MARKER, False)]:
        logger.removeHandler(old)
        old.close()
    setattr(handler, _MARKER, True)
    logger.addHandler(handler)


def configure_logging(settings: Settings) -> logging.Logger:
    level = logging.getLevelName(settings.LOG_LEVEL)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    # Console
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(FORMAT))
    _replace_handler(root, console)

    keeper_logger = logging.getLogger("LogKeeper")
    keeper_logger.setLevel(level)

    # File
    if settings.LOG_FILE:
        _replace_handler(keeper_logger, _mk_handler(Path(settings.LOG_FILE), level))

    return keeper_logger
