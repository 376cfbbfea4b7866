from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from .config import LoggingConfig

ROOT_LOGGER = "expanse_mcp"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# Chatty at INFO; only their warnings are interesting here.
_QUIET_LOGGERS = ("mcp", "asyncio")


def _handler_for(config: LoggingConfig) -> logging.Handler:
    if config.file:
        target = Path(config.file).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(target, encoding="utf-8")
    # stdout carries protocol frames
    return logging.StreamHandler(sys.stderr)


def configure_logging(config: LoggingConfig) -> None:
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[_handler_for(config)], force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the ``expanse_mcp`` namespace."""
    if not name or name == "__main__":
        return logging.getLogger(ROOT_LOGGER)
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
