"""
Logging configuration for the trilogy save codec.
"""

import logging
import logging.handlers
from pathlib import Path

from .config import (
    DEFAULT_LOG_LEVEL, LOG_DATE_FORMAT, LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES,
    LOG_FORMAT,
)


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',  # Cyan
        'INFO': '\033[32m',  # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',  # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']
        formatted = super().format(record)
        if record.levelname in formatted:
            formatted = formatted.replace(
                record.levelname, f'{color}{record.levelname}{reset}', 1
            )
        return formatted


def setup_logging(level: str = DEFAULT_LOG_LEVEL, log_file: str | None = None,
                  use_colors: bool = True) -> logging.Logger:
    """
    Configure the 'trilogy_save' logger with a console handler and an
    optional rotating file handler.

    Args:
        level: Console level name ('DEBUG', 'INFO', ...)
        log_file: Path of a log file capturing DEBUG and above, or None
        use_colors: Color level names on the console

    Returns:
        The configured package logger
    """
    package_logger = logging.getLogger('trilogy_save')
    package_logger.setLevel(logging.DEBUG)

    # Drop handlers from an earlier call
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter_cls = ColoredFormatter if use_colors else logging.Formatter
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(formatter_cls(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding='utf-8',
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        package_logger.addHandler(file_handler)

    package_logger.debug(f'Logging initialized (console: {level}, file: {log_file})')
    return package_logger
