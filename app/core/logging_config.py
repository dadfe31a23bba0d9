"""
Logging setup for the study assistant API.

Console output always; optional size-rotated files under ``logs/`` (a main
log plus an errors-only log). Request lines are emitted by RequestLogger.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR = Path(__file__).resolve().parents[2] / "logs"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "hpack": logging.WARNING,
    "anthropic": logging.WARNING,
    "supabase": logging.WARNING,
    "storage3": logging.WARNING,
    "pypdf": logging.ERROR,
    "PyPDF2": logging.ERROR,
}

# Generation calls routinely take seconds; anything slower is worth a warning
SLOW_REQUEST_MS = 30_000


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, DATE_FORMAT)


def get_file_handler(filename: str, level: int = logging.DEBUG) -> RotatingFileHandler:
    LOG_DIR.mkdir(exist_ok=True)
    handler = RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    return handler


def get_console_handler(level: int = logging.INFO) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    return handler


def resolve_level(log_level: str, environment: str) -> int:
    """An explicit LOG_LEVEL wins; otherwise DEBUG in development, WARNING in production."""
    if not log_level:
        log_level = "WARNING" if environment == "production" else "DEBUG"
    return getattr(logging, log_level.upper(), logging.INFO)


def setup_logging(
    app_name: str = "study_assistant",
    log_level: str = "",
    environment: str = "development",
    enable_console: bool = True,
    enable_file: bool = True,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        app_name: Prefix for log file names
        log_level: Console threshold; empty means decide from ``environment``
        environment: development or production
        enable_console: Log to stdout
        enable_file: Also write ``<app_name>.log`` and ``<app_name>_error.log``

    Returns:
        The root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers filter
    root_logger.handlers.clear()

    if enable_console:
        root_logger.addHandler(get_console_handler(resolve_level(log_level, environment)))

    if enable_file:
        root_logger.addHandler(get_file_handler(f"{app_name}.log", logging.DEBUG))
        root_logger.addHandler(get_file_handler(f"{app_name}_error.log", logging.ERROR))

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class RequestLogger:
    """Writes one line per HTTP request, levelled by outcome."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        client_ip: str | None = None,
        user_id: int | None = None,
    ):
        fields = [f"{method} {path}", f"status={status_code}", f"duration={duration_ms:.2f}ms"]
        if client_ip:
            fields.append(f"ip={client_ip}")
        if user_id:
            fields.append(f"user={user_id}")
        line = " | ".join(fields)

        if status_code >= 500:
            self.logger.error(line)
        elif status_code >= 400 or duration_ms > SLOW_REQUEST_MS:
            self.logger.warning(line)
        else:
            self.logger.info(line)
