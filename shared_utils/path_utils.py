"""
Path utilities for the Boreal Growth Sensitivity Pipeline.

This module provides consistent path handling, file discovery, and directory
management across all pipeline components.

Author: Boreal Growth Team
"""

from pathlib import Path
from typing import List, Union, Optional
import logging


def ensure_directory(path: Union[str, Path], parents: bool = True) -> Path:
    """
    Ensure directory exists, creating it if necessary.

    Args:
        path: Directory path to create
        parents: Whether to create parent directories

    Returns:
        Path: Created directory path

    Examples:
        >>> output_dir = ensure_directory("data/results/tables")
    """
    path = Path(path)
    path.mkdir(parents=parents, exist_ok=True)
    return path


def find_files(
    directory: Union[str, Path],
    pattern: str = "*",
    recursive: bool = True,
    file_types: Optional[List[str]] = None
) -> List[Path]:
    """
    Find files matching pattern in directory.

    Args:
        directory: Directory to search in
        pattern: Glob pattern to match
        recursive: Whether to search recursively
        file_types: List of file extensions to filter by (e.g., ['.csv'])

    Returns:
        List[Path]: Sorted list of matching file paths

    Examples:
        >>> ring_files = find_files("data/raw/ring_widths", "*.csv")
    """
    directory = Path(directory)

    if not directory.exists():
        logging.warning(f"Directory does not exist: {directory}")
        return []

    files = list(directory.rglob(pattern)) if recursive else list(directory.glob(pattern))

    if file_types:
        file_types = [ext.lower() for ext in file_types]
        files = [f for f in files if f.suffix.lower() in file_types]

    return sorted(f for f in files if f.is_file())


def validate_file_exists(path: Union[str, Path], description: str = "") -> Path:
    """
    Validate that file exists and return Path object.

    Args:
        path: File path to validate
        description: Description for error messages

    Returns:
        Path: Validated file path

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    path = Path(path)

    if not path.exists():
        desc = f" ({description})" if description else ""
        raise FileNotFoundError(f"File not found{desc}: {path}")

    return path
