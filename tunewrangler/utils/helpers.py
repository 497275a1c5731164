"""
Filesystem and formatting helpers shared by the processors
"""

import functools
import shutil
import time
from pathlib import Path
from typing import Iterable, List, Union

from .exceptions import FilePathError, PermissionDeniedError


DEFAULT_IGNORED_FILES = (".DS_Store", ".spotdl-cache")


def is_processable(path: Union[str, Path], ignored_files: Iterable[str] = DEFAULT_IGNORED_FILES) -> bool:
    """
    Check whether a directory entry should be handed to the song pipeline

    Args:
        path: Directory entry
        ignored_files: Exact file names that are never processed

    Returns:
        True for regular files that are not in the ignore list
    """
    path_obj = Path(path)
    return path_obj.is_file() and path_obj.name not in set(ignored_files)


def list_processable_files(
    directory: Union[str, Path],
    ignored_files: Iterable[str] = DEFAULT_IGNORED_FILES
) -> List[str]:
    """
    List processable file names in a directory

    Args:
        directory: Directory to scan (not recursive)
        ignored_files: Exact file names to skip

    Returns:
        Sorted list of base file names

    Raises:
        FilePathError: If the directory does not exist
    """
    directory = Path(directory).expanduser()
    if not directory.is_dir():
        raise FilePathError(f"Directory not found: {directory}", details={'path': str(directory)})

    ignored = set(ignored_files)
    return sorted(
        entry.name for entry in directory.iterdir()
        if is_processable(entry, ignored)
    )


def backup_file(source_dir: Union[str, Path], backup_dir: Union[str, Path], name: str) -> Path:
    """
    Copy a file into the backup directory before it is renamed or converted

    Args:
        source_dir: Directory holding the file
        backup_dir: Backup directory (created if missing)
        name: Base file name

    Returns:
        Path of the backup copy

    Raises:
        FilePathError: If the source file does not exist
        PermissionDeniedError: If the copy is refused by the filesystem
    """
    source = Path(source_dir).expanduser() / name
    if not source.exists():
        raise FilePathError(f"Cannot back up missing file: {source}", details={'path': str(source)})

    destination = ensure_directory(Path(backup_dir).expanduser()) / name
    try:
        shutil.copy2(source, destination)
    except PermissionError as e:
        raise PermissionDeniedError(f"Permission denied backing up {name}", details={'path': str(source)}) from e
    return destination


def empty_directory(directory: Union[str, Path]) -> int:
    """
    Remove every entry inside a directory, creating it if needed

    Args:
        directory: Directory to empty

    Returns:
        Number of removed entries
    """
    directory = ensure_directory(Path(directory).expanduser())
    removed = 0
    for entry in directory.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed += 1
    return removed


def format_duration(seconds: Union[int, float]) -> str:
    """Format an elapsed time as M:SS, or H:MM:SS past an hour"""
    if seconds < 0:
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    else:
        return f"{minutes}:{secs:02d}"


def retry_on_failure(max_attempts: int = 3, delay: float = 1.0, backoff: float = 2.0,
                     exceptions: tuple = (Exception,)):
    """
    Retry a flaky call, sleeping longer after each failure

    Args:
        max_attempts: Calls made before the last exception is re-raised
        delay: Seconds to sleep after the first failure
        backoff: Factor applied to the sleep after every failure
        exceptions: Exception types worth retrying
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 1
            current_delay = delay

            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions:
                    if attempt >= max_attempts:
                        raise

                    time.sleep(current_delay)
                    current_delay *= backoff
                    attempt += 1
        return wrapper
    return decorator


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create path and its parents if missing and return it as a Path"""
    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj


def replace_extension(filename: str, extension: str, new_extension: str) -> str:
    """
    Swap the trailing extension of a file name

    Args:
        filename: Base file name such as "Artist - Title.flac"
        extension: Current extension including the dot
        new_extension: Replacement extension including the dot

    Returns:
        File name with the new extension; unchanged names get it appended
    """
    if extension and filename.endswith(extension):
        return f"{filename[:-len(extension)]}{new_extension}"
    return f"{filename}{new_extension}"
