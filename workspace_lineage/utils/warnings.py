"""
Warning system for workspace indexing.

This module collects per-file warnings and errors raised while indexing so
they can be surfaced as status. A problem that keeps recurring for the same
file (a file that fails on every retry) is recorded once until it is
resolved.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional


@dataclass
class IndexWarning:
    """Warning or error message produced while indexing.

    Attributes:
        level: Severity level ("INFO", "WARNING", "ERROR").
        message: Warning or error message text.
        file_path: Optional file the message is about.

    Example:
        >>> warning = IndexWarning(
        ...     level="WARNING",
        ...     message="Parse failed, used pattern fallback",
        ...     file_path="reports/daily.sql",
        ... )
        >>> warning.level
        'WARNING'
    """

    level: str
    message: str
    file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate warning level."""
        valid_levels = ["INFO", "WARNING", "ERROR"]
        if self.level not in valid_levels:
            raise ValueError(
                f"Invalid warning level: {self.level}. "
                f"Must be one of {valid_levels}"
            )


class WarningCollector:
    """Collects indexing warnings, reporting each (file, kind) once.

    ``report`` records a message under a key; further reports under the
    same key are ignored until ``resolve`` is called for that file. The
    collector is shared between the scan pool and the drain thread, so all
    methods take an internal lock.

    Example:
        >>> collector = WarningCollector()
        >>> collector.report("ERROR", "Cannot read file", "a.sql", key="io")
        True
        >>> collector.report("ERROR", "Cannot read file", "a.sql", key="io")
        False
        >>> collector.has_errors()
        True
    """

    def __init__(self) -> None:
        """Initialize a WarningCollector."""
        self.warnings: list[IndexWarning] = []
        self._reported: set[tuple[Optional[str], str]] = set()
        self._lock = threading.Lock()

    def add(
        self, level: str, message: str, file_path: Optional[str] = None
    ) -> None:
        """Add a warning unconditionally."""
        warning = IndexWarning(level=level, message=message, file_path=file_path)
        with self._lock:
            self.warnings.append(warning)

    def report(
        self,
        level: str,
        message: str,
        file_path: Optional[str] = None,
        key: str = "default",
    ) -> bool:
        """Add a warning unless one with the same file and key is active.

        Args:
            level: Severity level ("INFO", "WARNING", "ERROR").
            message: Warning text.
            file_path: File the warning concerns.
            key: Kind of problem, e.g. "io" or "parse".

        Returns:
            True if the warning was recorded, False if it was a repeat.
        """
        warning = IndexWarning(level=level, message=message, file_path=file_path)
        with self._lock:
            if (file_path, key) in self._reported:
                return False
            self._reported.add((file_path, key))
            self.warnings.append(warning)
            return True

    def resolve(self, file_path: str, key: Optional[str] = None) -> None:
        """Forget active problems for a file so a new failure is reported.

        Args:
            file_path: File whose problems are resolved.
            key: Only resolve this kind of problem; all kinds when None.
        """
        with self._lock:
            self._reported = {
                entry
                for entry in self._reported
                if entry[0] != file_path or (key is not None and entry[1] != key)
            }

    def has_errors(self) -> bool:
        """Check if any error-level warnings exist."""
        with self._lock:
            return any(warning.level == "ERROR" for warning in self.warnings)

    def get_all(self) -> list[IndexWarning]:
        """Get all collected warnings in the order they were added."""
        with self._lock:
            return self.warnings.copy()

    def get_by_level(self, level: str) -> list[IndexWarning]:
        """Get warnings with the given severity level."""
        with self._lock:
            return [w for w in self.warnings if w.level == level]

    def get_for_file(self, file_path: str) -> list[IndexWarning]:
        """Get warnings recorded for one file."""
        with self._lock:
            return [w for w in self.warnings if w.file_path == file_path]

    def clear(self) -> None:
        """Clear all collected warnings and reported keys."""
        with self._lock:
            self.warnings.clear()
            self._reported.clear()

    def get_summary(self) -> dict[str, int]:
        """Get a summary of warnings by level.

        Example:
            >>> collector = WarningCollector()
            >>> collector.add("INFO", "Info 1")
            >>> collector.add("ERROR", "Error 1")
            >>> collector.get_summary() == {"INFO": 1, "WARNING": 0, "ERROR": 1}
            True
        """
        summary: dict[str, int] = {"INFO": 0, "WARNING": 0, "ERROR": 0}
        with self._lock:
            for warning in self.warnings:
                summary[warning.level] = summary.get(warning.level, 0) + 1
        return summary
