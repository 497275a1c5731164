"""
Utilities package
Common helpers, logging, exceptions and validation
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    log_with_break,
    OperationLogger,
    create_operation_logger,
    log_performance,
    get_current_log_file
)
from .helpers import (
    DEFAULT_IGNORED_FILES,
    is_processable,
    list_processable_files,
    backup_file,
    empty_directory,
    format_duration,
    retry_on_failure,
    ensure_directory,
    replace_extension
)
from .exceptions import (
    TuneWranglerError,
    FilePathError,
    AudioProcessingError,
    MetadataError,
    ConfigurationError,
    UnsupportedFormatError,
    PermissionDeniedError,
    NoArtistFoundError,
    get_error_message,
    log_error
)

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'log_with_break',
    'OperationLogger',
    'create_operation_logger',
    'log_performance',
    'get_current_log_file',

    # Helper exports
    'DEFAULT_IGNORED_FILES',
    'is_processable',
    'list_processable_files',
    'backup_file',
    'empty_directory',
    'format_duration',
    'retry_on_failure',
    'ensure_directory',
    'replace_extension',

    # Exception exports
    'TuneWranglerError',
    'FilePathError',
    'AudioProcessingError',
    'MetadataError',
    'ConfigurationError',
    'UnsupportedFormatError',
    'PermissionDeniedError',
    'NoArtistFoundError',
    'get_error_message',
    'log_error',
]
