"""
StudySpace logging: one shared "studyspace" logger writing to a rotating file and stdout.

Every record carries the id of the HTTP request it was logged under (see the
request middleware in api/api.py); records logged outside a request show "-".
"""

from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

LOGGER_NAME = "studyspace"
LOG_FORMAT = "%(asctime)s %(levelname)-8s request_id=%(request_id)s src=%(filename)s:%(lineno)d %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = _request_id.get()
        return True


class LevelColorFormatter(logging.Formatter):
    """Colors the level name on a terminal. Off when NO_COLOR is set or stdout is not a TTY."""

    _COLORS = {
        logging.DEBUG: "\x1b[36m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[35m",
    }

    def __init__(self, *args, enable_color: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.enable_color = enable_color

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = self._COLORS.get(record.levelno) if self.enable_color else None
        if color is None:
            return line
        return line.replace(record.levelname, f"{color}{record.levelname}\x1b[0m", 1)


def _color_enabled() -> bool:
    return not os.getenv("NO_COLOR") and sys.stdout.isatty()


def configure_logging(
    *,
    log_dir: str | Path | None = None,
    log_file: str = "studyspace.log",
    level: str = "INFO",
) -> logging.Logger:
    """
    Return the shared logger, setting up its handlers on first use.

    LOG_LEVEL and LOG_DIR in the environment win over the arguments.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    numeric_level = logging.getLevelNamesMapping().get(os.getenv("LOG_LEVEL", level).upper(), logging.INFO)
    log_dir = Path(os.getenv("LOG_DIR") or log_dir or "logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.setLevel(numeric_level)
    logger.propagate = False
    request_filter = RequestIdFilter()

    # 10 MB per file, ten backups
    file_handler = RotatingFileHandler(
        log_dir / log_file, maxBytes=10 * 1024 * 1024, backupCount=10, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(LevelColorFormatter(LOG_FORMAT, DATE_FORMAT, enable_color=_color_enabled()))

    for handler in (file_handler, console_handler):
        handler.setLevel(numeric_level)
        handler.addFilter(request_filter)
        logger.addHandler(handler)
    return logger


def set_request_id(request_id: Optional[str] = None) -> str:
    rid = request_id or str(uuid.uuid4())
    _request_id.set(rid)
    return rid


def clear_request_id() -> None:
    _request_id.set("-")


@contextmanager
def log_request(logger: logging.Logger, name: str) -> Iterator[None]:
    """Time an outbound call: `with log_request(logger, "gemini.generate"): ...`"""
    start = time.monotonic()
    try:
        yield
    except Exception as exc:
        logger.warning("%s failed duration_ms=%s error=%s", name, int((time.monotonic() - start) * 1000), exc)
        raise
    logger.info("%s ok duration_ms=%s", name, int((time.monotonic() - start) * 1000))
