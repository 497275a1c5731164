"""
Input validation utilities
"""
from pathlib import Path
from typing import Optional, Tuple


def validate_directory(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a library directory path

    Args:
        path: Directory path to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path:
        return False, "Directory cannot be empty"

    try:
        path_obj = Path(path).expanduser()
        if not path_obj.exists():
            return False, f"Directory does not exist: {path_obj}"
        if not path_obj.is_dir():
            return False, f"Not a directory: {path_obj}"
        return True, None

    except OSError as e:
        return False, f"Invalid path: {e}"


def validate_min_count(value: int) -> Tuple[bool, Optional[str]]:
    """
    Validate the minimum artist count used by the collection analysis

    Args:
        value: Minimum number of tracks per artist

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value < 1:
        return False, "Minimum count must be at least 1"
    if value > 10000:
        return False, "Minimum count cannot exceed 10000"
    return True, None
