"""
Logging configuration and utilities for TuneWrangler

Two audiences read the output of a run:

- the **console** shows what the user needs while hundreds of files scroll by:
  composed filenames, duplicates, skips, warnings and a progress bar
- the **log file** keeps the full technical trail (every rule that changed a
  field, ffmpeg commands, timings) for later debugging

Records reach the console only when they are WARNING or above, or when they
carry `console_output=True` (set through `get_logger(name).console_info()`).
Console lines are written through tqdm so they never tear an active progress
bar.
"""

import functools
import logging
import logging.handlers
import re
import sys
import time
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style
from tqdm import tqdm


# Initialize colorama for Windows compatibility
colorama.init()


FILE_LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s'
FILE_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
SEPARATOR = "----------------------------------"

# Loggers that always reach the console regardless of level
CONSOLE_LOGGER_SUFFIXES = ('.console', '.user')

# Libraries that log every probe and tag read at INFO
QUIET_LOGGERS = ('pydub', 'pydub.converter', 'mutagen')

SIZE_UNITS = {'B': 1, 'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}
SIZE_PATTERN = re.compile(r'^(\d+(?:\.\d+)?)\s*(B|KB|MB|GB)$')


class ConsoleMessageFilter(logging.Filter):
    """Let only user-facing records through to the console"""

    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        if getattr(record, 'console_output', False):
            return True
        return record.name.endswith(CONSOLE_LOGGER_SUFFIXES)


class ColoredFormatter(logging.Formatter):
    """
    Console formatter that colors warnings and errors

    Plain console messages stay uncolored so composed filenames are easy to
    copy; WARNING and above are printed in their level color.
    """

    LEVEL_COLORS = {
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, fmt: str = '%(message)s', use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{message}{Style.RESET_ALL}" if color else message


class ProgressHandler(logging.StreamHandler):
    """Stream handler that prints above an active tqdm progress bar"""

    def __init__(self, stream=None):
        super().__init__(stream or sys.stdout)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


def parse_size(size_str: str) -> int:
    """
    Parse a human readable size into bytes

    Args:
        size_str: Size such as "10MB", "500 KB" or "1.5GB"

    Returns:
        Size in bytes

    Raises:
        ValueError: If the string is not a size
    """
    match = SIZE_PATTERN.match(size_str.upper().strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str}")

    number, unit = match.groups()
    return int(float(number) * SIZE_UNITS[unit])


def _console_handler(colored_output: bool) -> logging.Handler:
    handler = ProgressHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)
    handler.addFilter(ConsoleMessageFilter())
    handler.setFormatter(ColoredFormatter(use_colors=colored_output))
    return handler


def _file_handler(log_file: str, level: int, max_size: str, backup_count: int) -> logging.Handler:
    log_path = Path(log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=parse_size(max_size),
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    colored_output: bool = True,
    max_size: str = "10MB",
    backup_count: int = 3
) -> None:
    """
    Replace the root handlers with a console handler and an optional log file

    The root logger captures everything; each handler decides what it keeps.

    Args:
        level: Level of the file handler (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Rotating log file, None to disable file logging
        console_output: Show user-facing messages on the console
        colored_output: Color console warnings and errors
        max_size: Size at which the log file rotates, e.g. "10MB"
        backup_count: Rotated files to keep
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)

    if console_output:
        root_logger.addHandler(_console_handler(colored_output))

    if log_file:
        numeric_level = getattr(logging, level.upper(), logging.INFO)
        root_logger.addHandler(_file_handler(log_file, numeric_level, max_size, backup_count))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger('tunewrangler').debug(
        f"Logging initialized: level={level} console={console_output} file={log_file}"
    )


def configure_from_settings() -> None:
    """
    Configure logging from the logging section of the settings

    A relative log file name is placed in the config directory
    (~/.tunewrangler).
    """
    from ..config.settings import get_settings

    settings = get_settings()
    log_config = settings.logging

    log_file = None
    if log_config.file:
        path = Path(log_config.file).expanduser()
        log_file = str(path if path.is_absolute() else settings.get_config_directory() / path)

    setup_logging(
        level=log_config.level,
        log_file=log_file,
        console_output=log_config.console_output,
        colored_output=log_config.colored_output,
        max_size=log_config.max_size,
        backup_count=log_config.backup_count
    )


def get_current_log_file() -> Optional[Path]:
    """Path of the active rotating log file, or None when logging to console only"""
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            return Path(handler.baseFilename)
    return None


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger with console helpers attached

    `console_info(message)` logs at INFO and also shows the message on the
    console.

    Args:
        name: Logger name (typically __name__)

    Returns:
        The logger for name
    """
    logger = logging.getLogger(name)

    if not hasattr(logger, 'console_info'):
        def console_info(message: str) -> None:
            logger.info(message, extra={'console_output': True})

        logger.console_info = console_info

    return logger


def log_with_break(logger: logging.Logger, message: str) -> None:
    """
    Show a console message followed by a separator line

    Batch renames print one block per file; the separator keeps the blocks
    readable when hundreds of files scroll by.
    """
    console_logger = get_logger(logger.name)
    console_logger.console_info(message)
    console_logger.console_info(f"\n{SEPARATOR}\n")


class OperationLogger:
    """
    Console start/complete messages and a tqdm bar for a batch operation

    Progress lines go to the log file; the console only sees the bar.
    """

    def __init__(self, logger: logging.Logger, operation_name: str, unit_label: str = "Processing"):
        """
        Initialize operation logger

        Args:
            logger: Logger from get_logger()
            operation_name: Name used in the log file, e.g. "Rename downloaded"
            unit_label: Label shown in front of the progress bar
        """
        self.logger = logger
        self.operation_name = operation_name
        self.unit_label = unit_label
        self.start_time: Optional[float] = None
        self.progress_bar: Optional[tqdm] = None

    def start(self, message: Optional[str] = None) -> None:
        self.start_time = time.time()
        self.logger.console_info(message or f"Starting {self.operation_name}")

    def progress(self, item: str, current: int, total: int) -> None:
        """
        Advance the progress bar to current

        Args:
            item: Name of the item just processed
            current: Items processed so far (1-based)
            total: Total number of items
        """
        self.logger.debug(f"{self.operation_name}: {item} ({current}/{total})")

        if self.progress_bar is None:
            self.progress_bar = tqdm(
                total=total,
                desc=self.unit_label,
                unit="file",
                leave=False,
                colour='cyan'
            )

        self.progress_bar.n = current
        self.progress_bar.refresh()

    def complete(self, message: Optional[str] = None) -> None:
        if self.progress_bar is not None:
            self.progress_bar.close()
            self.progress_bar = None

        self.logger.console_info(message or f"{self.operation_name} completed")

        if self.start_time is not None:
            self.logger.info(f"{self.operation_name} finished in {time.time() - self.start_time:.2f}s")


def create_operation_logger(name: str, operation: str, unit_label: str = "Processing") -> OperationLogger:
    """Create an OperationLogger on the module logger `name`"""
    return OperationLogger(get_logger(name), operation, unit_label)


def log_performance(func):
    """Decorator logging the run time of a function to the log file"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        start_time = time.time()

        try:
            return func(*args, **kwargs)
        finally:
            logger.debug(f"{func.__name__} took {time.time() - start_time:.3f}s")

    return wrapper
