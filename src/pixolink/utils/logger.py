"""
Logging utilities for PixoLink.

Every module obtains its logger through ``get_logger(__name__)``. Loggers are
built once per name from the ``logging`` section of the configuration, with
defaults while configuration is unavailable.

Pipeline runs bind the user and session they serve with ``log_context``; each
line written inside the block, including lines from listeners the run
triggers, ends with those fields, e.g. ``... | started [user=u1 session=s1]``.
"""

# Standard library imports
import contextlib
import contextvars
import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from typing import Dict, Iterator, List, NamedTuple, Optional, TextIO, Union

# Defaults used until configuration is available
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"
DEFAULT_MAX_BYTES = 10_485_760  # 10MB
DEFAULT_BACKUP_COUNT = 5
FRAMEWORK_LOGGER_NAME = "pixolink"

LEVEL_COLORS = {
    'DEBUG': '\033[36m',     # Cyan
    'INFO': '\033[32m',      # Green
    'WARNING': '\033[33m',   # Yellow
    'ERROR': '\033[31m',     # Red
    'CRITICAL': '\033[35m',  # Magenta
}
RESET_COLOR = '\033[0m'

_logger_lock = threading.Lock()
_loggers: Dict[str, logging.Logger] = {}
_run_fields = contextvars.ContextVar('pixolink_log_fields', default={})


class LogSettings(NamedTuple):
    """Resolved handler settings for new loggers."""
    level: int
    format: str
    file_path: Optional[str]
    max_bytes: int
    backup_count: int


def resolve_level(level: Union[str, int]) -> int:
    """Turn a level name ('info', 'WARNING') or number into a logging level."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def current_log_context() -> Dict[str, str]:
    """Fields bound by the innermost ``log_context`` block."""
    return dict(_run_fields.get())


@contextlib.contextmanager
def log_context(**fields: Optional[str]) -> Iterator[Dict[str, str]]:
    """
    Bind fields to every log line written inside the block.

    Fields set to None are skipped. Nested blocks extend the outer fields and
    the outer set is restored on exit. Tasks started inside the block inherit
    the fields.
    """
    bound = dict(_run_fields.get())
    bound.update({key: str(value) for key, value in fields.items() if value is not None})
    token = _run_fields.set(bound)
    try:
        yield dict(bound)
    finally:
        _run_fields.reset(token)


class RunContextFilter(logging.Filter):
    """Copies the bound run fields onto each record as ``record.run``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run = ' '.join(f"{key}={value}" for key, value in _run_fields.get().items())
        return True


class LogFormatter(logging.Formatter):
    """Formats records, colours the level name and appends bound run fields."""

    def __init__(self, fmt: Optional[str] = None, use_color: bool = True):
        super().__init__(fmt or DEFAULT_LOG_FORMAT)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        try:
            if self.use_color and levelname in LEVEL_COLORS:
                record.levelname = f"{LEVEL_COLORS[levelname]}{levelname}{RESET_COLOR}"
            line = super().format(record)
        finally:
            record.levelname = levelname

        run = getattr(record, 'run', '')
        return f"{line} [{run}]" if run else line


def _load_settings() -> LogSettings:
    # config_manager is read lazily; it imports nothing from this module
    try:
        from pixolink.core.config import config_manager
        log_config = config_manager.get_logging_config()
    except (ImportError, AttributeError):
        log_config = None

    if log_config is None:
        return LogSettings(
            level=resolve_level(DEFAULT_LOG_LEVEL),
            format=DEFAULT_LOG_FORMAT,
            file_path=None,
            max_bytes=DEFAULT_MAX_BYTES,
            backup_count=DEFAULT_BACKUP_COUNT,
        )
    return LogSettings(
        level=resolve_level(log_config.level),
        format=log_config.format,
        file_path=log_config.file_path,
        max_bytes=log_config.max_size,
        backup_count=log_config.backup_count,
    )


def console_handler(fmt: str = DEFAULT_LOG_FORMAT, stream: Optional[TextIO] = None) -> logging.Handler:
    """Stream handler that colours level names only when the stream is a terminal."""
    stream = stream or sys.stdout
    is_tty = getattr(stream, 'isatty', None)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(LogFormatter(fmt, use_color=bool(is_tty and is_tty())))
    handler.addFilter(RunContextFilter())
    return handler


def _build_handlers(settings: LogSettings) -> List[logging.Handler]:
    handlers = [console_handler(settings.format)]
    if settings.file_path:
        file_handler = RotatingFileHandler(
            settings.file_path,
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count
        )
        file_handler.setFormatter(LogFormatter(settings.format, use_color=False))
        file_handler.addFilter(RunContextFilter())
        handlers.append(file_handler)
    return handlers


def get_logger(name: str) -> logging.Logger:
    """
    Get the configured logger for a name.

    The first call attaches the console handler and, when the logging
    configuration names a file, a rotating file handler. Later calls return
    the cached instance.
    """
    with _logger_lock:
        logger = _loggers.get(name)
        if logger is not None:
            return logger

        logger = logging.getLogger(name)
        if not logger.handlers:
            try:
                settings = _load_settings()
                logger.setLevel(settings.level)
                for handler in _build_handlers(settings):
                    logger.addHandler(handler)
            except Exception as e:
                logger.setLevel(logging.DEBUG)
                logger.addHandler(console_handler())
                logger.warning(f"Using fallback logging configuration: {str(e)}")

        _loggers[name] = logger
        return logger


def set_framework_log_level(level: Union[str, int]) -> None:
    """Set the level of the ``pixolink`` logger and of every logger handed out so far."""
    resolved = resolve_level(level)
    logging.getLogger(FRAMEWORK_LOGGER_NAME).setLevel(resolved)
    with _logger_lock:
        for logger in _loggers.values():
            logger.setLevel(resolved)


def add_file_handler(logger: logging.Logger, file_path: str) -> None:
    """Also write a logger's records, with run fields, to a plain file."""
    try:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(LogFormatter(DEFAULT_LOG_FORMAT, use_color=False))
        file_handler.addFilter(RunContextFilter())
        logger.addHandler(file_handler)
    except Exception as e:
        logger.warning(f"Could not create file handler for {file_path}: {str(e)}")
