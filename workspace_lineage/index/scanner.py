"""
Workspace file discovery and reading.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable, Union

from workspace_lineage.exceptions import FileUnavailable, IOFailure

logger = logging.getLogger(__name__)


def discover_files(
    root: Union[str, Path],
    patterns: Iterable[str],
    exclude_dirs: Iterable[str] = (),
) -> list[Path]:
    """Find workspace files matching any of the glob patterns.

    Directories whose name is in ``exclude_dirs`` are not descended into.
    Patterns are matched against the file name.

    Args:
        root: Workspace root directory.
        patterns: Glob patterns such as ``"*.sql"``.
        exclude_dirs: Directory names to skip.

    Returns:
        Matching file paths, sorted.

    Raises:
        FileUnavailable: If ``root`` is not a directory.

    Example:
        >>> discover_files("warehouse", ["*.sql"], ["build"])
        [PosixPath('warehouse/marts/orders.sql'), ...]
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise FileUnavailable(str(root_path), f"Workspace root is not a directory: {root_path}")

    patterns = list(patterns)
    excluded = set(exclude_dirs)
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        for filename in filenames:
            if any(fnmatch.fnmatch(filename, pattern) for pattern in patterns):
                found.append(Path(dirpath) / filename)

    logger.debug("Discovered %d file(s) under %s", len(found), root_path)
    return sorted(found)


def matches_patterns(
    path: Union[str, Path],
    patterns: Iterable[str],
    exclude_dirs: Iterable[str] = (),
) -> bool:
    """Check whether a single path would be picked up by discovery."""
    path = Path(path)
    excluded = set(exclude_dirs)
    if any(part in excluded for part in path.parts[:-1]):
        return False
    return any(fnmatch.fnmatch(path.name, pattern) for pattern in patterns)


def read_source(path: Union[str, Path], max_file_size: int) -> bytes:
    """Read a file's raw bytes.

    Raises:
        FileUnavailable: If the file does not exist.
        IOFailure: If the file is larger than ``max_file_size`` or cannot
            be read.
    """
    file_path = Path(path)
    try:
        size = file_path.stat().st_size
    except FileNotFoundError as e:
        raise FileUnavailable(str(file_path)) from e
    except OSError as e:
        raise IOFailure(str(file_path), f"Cannot stat {file_path}: {e}") from e

    if size > max_file_size:
        raise IOFailure(
            str(file_path),
            f"File too large: {file_path} ({size} bytes, limit {max_file_size})",
        )

    try:
        return file_path.read_bytes()
    except FileNotFoundError as e:
        raise FileUnavailable(str(file_path)) from e
    except OSError as e:
        raise IOFailure(str(file_path), f"Cannot read {file_path}: {e}") from e


def workspace_path(root: Union[str, Path], path: Union[str, Path]) -> str:
    """Workspace key for a file: POSIX path relative to root when inside it.

    Example:
        >>> workspace_path("/ws", "/ws/marts/orders.sql")
        'marts/orders.sql'
    """
    root_path = Path(root).resolve()
    file_path = Path(path)
    if not file_path.is_absolute():
        file_path = root_path / file_path
    try:
        return file_path.resolve().relative_to(root_path).as_posix()
    except ValueError:
        return file_path.as_posix()
