"""
Workspace session.

This module defines the WorkspaceSession class, the entry point that wires
the function registry, extractor, dependency graph, index manager and
analyzers together for one workspace and exposes the query surface.

Example:
    >>> from workspace_lineage import WorkspaceSession
    >>> with WorkspaceSession("warehouse") as session:
    ...     session.scan()
    ...     trace = session.trace_lineage("daily_revenue", "upstream")
    ...     report = session.analyze_impact("orders", "drop")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

from workspace_lineage.extraction.reference_extractor import ReferenceExtractor
from workspace_lineage.graph.dependency_graph import DependencyGraph
from workspace_lineage.index.index_manager import (
    ChangeKind,
    IndexManager,
    ScanResult,
    StateListener,
)
from workspace_lineage.lineage.impact_analyzer import ImpactAnalyzer
from workspace_lineage.lineage.lineage_analyzer import LineageAnalyzer
from workspace_lineage.models.config import IndexConfig
from workspace_lineage.models.graph import Direction, Node
from workspace_lineage.models.impact import ChangeType, ImpactReport
from workspace_lineage.models.lineage_path import LineagePath, LineageTrace
from workspace_lineage.models.source_file import SourceFile
from workspace_lineage.parser.sql_parser import SQLParser

logger = logging.getLogger(__name__)


class WorkspaceSession:
    """Dependency index and query surface for one workspace.

    Each session owns its own function registry, graph and index manager;
    nothing is shared between sessions. Close the session (or use it as a
    context manager) to stop the update queue.

    Args:
        root: Workspace root directory.
        config: Index configuration; defaults to ``IndexConfig()``.
        state_listener: Optional queue state callback passed to the index
            manager.
    """

    def __init__(
        self,
        root: Union[str, Path],
        config: Optional[IndexConfig] = None,
        state_listener: Optional[StateListener] = None,
    ) -> None:
        self.root = Path(root)
        self.config = config or IndexConfig()
        self.registry = self.config.build_function_registry()
        self.extractor = ReferenceExtractor(
            registry=self.registry,
            parser=SQLParser(self.config.dialect),
            dialect=self.config.dialect,
        )
        self.graph = DependencyGraph()
        self.index = IndexManager(
            self.root,
            self.graph,
            self.extractor,
            config=self.config,
            state_listener=state_listener,
        )
        self.lineage = LineageAnalyzer(self.graph, self.config.lineage_max_depth)
        self.impact = ImpactAnalyzer(self.graph, self.config.impact_max_depth, self.lineage)

    def __enter__(self) -> "WorkspaceSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def scan(self) -> ScanResult:
        """Index the whole workspace."""
        return self.index.scan()

    def handle_event(
        self,
        path: Union[str, Path],
        change_kind: Union[ChangeKind, str],
        content: Optional[Union[str, bytes]] = None,
        old_path: Optional[Union[str, Path]] = None,
    ) -> bool:
        """Queue a file-change event; see ``IndexManager.handle_event``."""
        return self.index.handle_event(path, change_kind, content, old_path)

    def flush(self) -> int:
        """Drain queued events now instead of waiting for the debounce."""
        return self.index.flush()

    def get_graph_snapshot(self) -> dict[str, Any]:
        """JSON-compatible snapshot of the dependency graph."""
        return self.graph.to_dict()

    def trace_lineage(
        self,
        node: str,
        direction: Union[Direction, str] = Direction.UPSTREAM,
        max_depth: Optional[int] = None,
    ) -> LineageTrace:
        """Trace a node upstream or downstream.

        Raises:
            NodeNotFoundError: If the node is not in the graph.
        """
        return self.lineage.trace_lineage(node, direction, max_depth)

    def find_paths(
        self, source: str, target: str, max_depth: Optional[int] = None
    ) -> list[LineagePath]:
        """Data-flow paths from one node to another.

        Raises:
            NodeNotFoundError: If either node is not in the graph.
        """
        return self.lineage.find_paths(source, target, max_depth)

    def find_root_sources(self) -> list[Node]:
        return self.lineage.find_root_sources()

    def find_terminal_nodes(self) -> list[Node]:
        return self.lineage.find_terminal_nodes()

    def analyze_impact(
        self, node: str, change_type: Union[ChangeType, str] = ChangeType.MODIFY
    ) -> ImpactReport:
        return self.impact.analyze(node, change_type)

    def detect_circular_dependencies(self) -> list[list[str]]:
        return self.graph.detect_circular_dependencies()

    def file_statuses(self) -> list[SourceFile]:
        return self.index.file_statuses()

    def get_statistics(self) -> dict[str, int]:
        return self.graph.get_statistics()

    def is_index_stale(self) -> bool:
        return self.index.is_index_stale()

    def clear_cache(self) -> None:
        """Delete the persisted index cache, if one is configured."""
        self.index.clear_cache()

    def close(self) -> None:
        """Stop the update queue. Safe to call more than once."""
        self.index.close()
        logger.debug("Workspace session for %s closed", self.root)
