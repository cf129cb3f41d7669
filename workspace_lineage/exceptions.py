"""
Custom exception classes for workspace indexing.

This module defines all custom exceptions used throughout the
workspace_lineage package. Parse and I/O failures are recovered inside the
index manager; graph inconsistencies are invariant violations and are never
caught by library code.
"""

from typing import Optional


class LineageError(Exception):
    """Base exception class for all workspace lineage errors.

    Attributes:
        message: Human-readable error message describing the error.
    """

    def __init__(self, message: str) -> None:
        """Initialize a LineageError with a message.

        Args:
            message: Error message describing what went wrong.
        """
        self.message = message
        super().__init__(self.message)


class ParseFailure(LineageError):
    """Raised when SQL text cannot be converted into the statement model.

    The reference extractor catches this and switches to pattern-based
    extraction, so callers of the extractor never see it.

    Attributes:
        message: Description of the failure.
        line: Optional 1-based line where the failure was detected.
    """

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.line = line
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)


class FileUnavailable(LineageError):
    """Raised when a queued file no longer exists on disk.

    Attributes:
        message: Error message.
        path: Path of the missing file.
    """

    def __init__(self, path: str, message: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message or f"File no longer exists: {path}")


class IOFailure(LineageError):
    """Raised when a file exists but cannot be read or is too large.

    Attributes:
        message: Error message.
        path: Path of the file.
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)


class GraphInconsistency(LineageError):
    """Raised when the dependency graph violates one of its invariants.

    This should be unreachable given the transactional mutation discipline
    of the graph. Tests call ``DependencyGraph.check_invariants`` to assert
    that it is.
    """


class NodeNotFoundError(LineageError):
    """Raised when a lineage request names a node that is not in the graph.

    Attributes:
        message: Error message.
        node_id: The requested node identifier.
    """

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found in dependency graph: '{node_id}'")


class ConfigError(LineageError):
    """Raised when a configuration file cannot be read or decoded."""
