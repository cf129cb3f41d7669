"""
Workspace indexing.

File discovery and the index manager that keeps the dependency graph in
step with the workspace.
"""

from workspace_lineage.index.index_manager import (
    ChangeKind,
    FileEvent,
    IndexManager,
    QueueItemState,
    ScanResult,
)
from workspace_lineage.index.scanner import discover_files, read_source, workspace_path

__all__ = [
    "ChangeKind",
    "FileEvent",
    "IndexManager",
    "QueueItemState",
    "ScanResult",
    "discover_files",
    "read_source",
    "workspace_path",
]
