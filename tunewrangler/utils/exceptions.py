"""
Exception classes for TuneWrangler

This module defines the custom exceptions used throughout the application.
Each exception carries a human-readable message, a short machine-friendly
code and an optional details dictionary for logging.

Exception Hierarchy:
    TuneWranglerError (base)
        FilePathError - Missing or unreadable files and directories
        AudioProcessingError - ffmpeg/ffprobe failures
        MetadataError - Tag reading/writing failures
        ConfigurationError - Invalid configuration or unknown folder names
        UnsupportedFormatError - File extension that cannot be processed
        PermissionDeniedError - Filesystem permission problems
        NoArtistFoundError - A downloaded filename without any artist
"""

import logging
from typing import Any, Dict, Optional


class TuneWranglerError(Exception):
    """
    Base exception for all TuneWrangler errors.

    All custom exceptions inherit from this class, allowing callers to catch
    every application error with a single except clause.

    Attributes:
        message: Human-readable error description.
        code: Short error code used in logs (e.g. 'FILE_PATH_ERROR').
        details: Optional dictionary with additional context (paths, filenames).

    Example:
        try:
            song = new_song(name, directory, SourceVariant.FRESHLY_DOWNLOADED)
        except TuneWranglerError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    code = "TUNEWRANGLER_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            code: Optional override of the class error code.
            details: Optional dictionary containing additional context. Common
                     keys include 'path', 'filename' and 'original_error'.
        """
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class FilePathError(TuneWranglerError):
    """
    Raised when a file or directory cannot be found or read.

    Example:
        raise FilePathError(
            "Source directory does not exist",
            details={'path': '/Users/me/Music/Downloaded/'}
        )
    """
    code = "FILE_PATH_ERROR"


class AudioProcessingError(TuneWranglerError):
    """
    Raised when an external audio process (ffmpeg, ffprobe) fails.

    The details usually carry the command's stderr output under 'stderr'.
    """
    code = "AUDIO_PROCESSING_ERROR"


class MetadataError(TuneWranglerError):
    """Raised when audio tags cannot be read or written."""
    code = "METADATA_ERROR"


class ConfigurationError(TuneWranglerError):
    """
    Raised when there's an issue with the configuration.

    Common causes:
        - Unknown folder name requested from the settings
        - Invalid YAML in config.yaml
        - Invalid numeric values (e.g. zero concurrency)
    """
    code = "CONFIGURATION_ERROR"


class UnsupportedFormatError(TuneWranglerError):
    """Raised for file extensions the pipeline cannot process."""
    code = "UNSUPPORTED_FORMAT_ERROR"


class PermissionDeniedError(TuneWranglerError):
    """Raised when the filesystem refuses a read, write or move."""
    code = "PERMISSION_ERROR"


class NoArtistFoundError(TuneWranglerError):
    """
    Raised when a freshly downloaded filename has no separator and neither
    the remix nor the featuring detection produced an artist.

    This is the only error song construction can raise. Batch processors
    skip the file and continue with the next one.
    """
    code = "NO_ARTIST_FOUND"

    def __init__(self, filename: str = "") -> None:
        super().__init__("No artist found", details={'filename': filename} if filename else None)


def get_error_message(error: BaseException) -> str:
    """
    Get a user-facing message for any exception

    Args:
        error: Exception instance

    Returns:
        The application message for TuneWranglerError, otherwise str(error)
    """
    if isinstance(error, TuneWranglerError):
        return error.message
    return str(error) or error.__class__.__name__


def log_error(
    logger: logging.Logger,
    error: BaseException,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an exception with its code, details and caller context

    Args:
        logger: Logger to write to
        error: Exception to log
        context: Extra context such as the operation name
    """
    code = getattr(error, 'code', error.__class__.__name__)
    details = dict(getattr(error, 'details', {}) or {})
    if context:
        details.update(context)

    logger.error(f"[{code}] {get_error_message(error)}")
    if details:
        logger.debug(f"Error details: {details}")
