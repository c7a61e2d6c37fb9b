"""
Per-app loggers for the agent server and the client tools.

Shared infrastructure (the payments layer) does not own a logger. It calls
``get_current_logger()`` and logs through whichever app entered
``set_app_context``:

    with set_app_context(AppLogger.A2A_AGENT):
        payments.validate_request(token, agent_id=..., plan_id=...)
"""

import logging
import os
import sys
from contextvars import ContextVar
from enum import Enum
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_DIR = os.getenv("LOG_DIR", "logs")
_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5


class AppLogger(Enum):
    A2A_AGENT = "a2a_agent"
    A2A_CLIENT = "a2a_client"
    WEBHOOK = "webhook"
    DEFAULT = "app_logger"


APP_LOG_LEVELS = {
    AppLogger.A2A_AGENT: logging.DEBUG,
    AppLogger.A2A_CLIENT: logging.DEBUG,
    AppLogger.WEBHOOK: logging.INFO,
    AppLogger.DEFAULT: logging.INFO,
}


def _rotating_handler(path: str, formatter: logging.Formatter, level: int = logging.NOTSET) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def setup_logger(name: str = AppLogger.DEFAULT.value, log_level: int = logging.INFO) -> logging.Logger:
    """
    Configure ``name`` to log to stdout, ``LOG_DIR/<name>.log`` and
    ``LOG_DIR/<name>_error.log`` (errors only). Handlers are attached once.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    if not logger.handlers:
        os.makedirs(LOG_DIR, exist_ok=True)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
        logger.addHandler(_rotating_handler(os.path.join(LOG_DIR, f"{name}.log"), formatter))
        logger.addHandler(
            _rotating_handler(os.path.join(LOG_DIR, f"{name}_error.log"), formatter, logging.ERROR)
        )

    return logger


def get_app_logger(app: AppLogger) -> logging.Logger:
    return setup_logger(app.value, APP_LOG_LEVELS[app])


_current_app_logger: ContextVar[AppLogger] = ContextVar("current_app_logger", default=AppLogger.DEFAULT)


def get_current_logger() -> logging.Logger:
    """Logger of the app that entered the innermost ``set_app_context``."""
    return get_app_logger(_current_app_logger.get())


class set_app_context:
    """Context manager routing ``get_current_logger()`` to ``app_logger`` for its body."""

    def __init__(self, app_logger: AppLogger):
        self.app_logger = app_logger
        self.token: Optional[object] = None

    def __enter__(self):
        self.token = _current_app_logger.set(self.app_logger)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            _current_app_logger.reset(self.token)
        return False
