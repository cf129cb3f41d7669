"""
SQL Workspace Dependency Indexer v1.0

Indexes a directory of SQL files, builds an object-level dependency graph
of tables, views and files, and answers lineage and impact questions
against it.

Example:
    >>> from workspace_lineage import WorkspaceSession
    >>> with WorkspaceSession("warehouse") as session:
    ...     session.scan()
    ...     upstream = session.trace_lineage("daily_revenue", "upstream")
    ...     report = session.analyze_impact("orders", "drop")
"""

from workspace_lineage.version import __version__, __version_info__

__author__ = "Workspace Lineage Contributors"

from workspace_lineage.dialects.function_registry import FunctionRegistry, normalize_dialect
from workspace_lineage.exceptions import (
    ConfigError,
    FileUnavailable,
    GraphInconsistency,
    IOFailure,
    LineageError,
    NodeNotFoundError,
    ParseFailure,
)
from workspace_lineage.extraction.reference_extractor import (
    ExtractionResult,
    ReferenceExtractor,
)
from workspace_lineage.graph.dependency_graph import DependencyGraph
from workspace_lineage.index.index_manager import (
    ChangeKind,
    FileEvent,
    IndexManager,
    QueueItemState,
    ScanResult,
)
from workspace_lineage.lineage.impact_analyzer import ImpactAnalyzer
from workspace_lineage.lineage.lineage_analyzer import LineageAnalyzer
from workspace_lineage.models.config import IndexConfig
from workspace_lineage.models.graph import Direction, Edge, EdgeType, Node, NodeKind
from workspace_lineage.models.impact import ChangeType, ImpactItem, ImpactReport, Severity
from workspace_lineage.models.lineage_path import LineagePath, LineageStep, LineageTrace
from workspace_lineage.models.reference import Clause, Definition, DefinitionKind, Reference
from workspace_lineage.models.source_file import ParseStatus, SourceFile
from workspace_lineage.parser.sql_parser import SQLParser
from workspace_lineage.workspace import WorkspaceSession

__all__ = [
    # Version info
    "__version__",
    "__version_info__",
    # Session
    "WorkspaceSession",
    # Core components
    "DependencyGraph",
    "FunctionRegistry",
    "ImpactAnalyzer",
    "IndexManager",
    "LineageAnalyzer",
    "ReferenceExtractor",
    "SQLParser",
    "normalize_dialect",
    # Configuration
    "IndexConfig",
    # Indexing
    "ChangeKind",
    "FileEvent",
    "QueueItemState",
    "ScanResult",
    # Data models
    "ChangeType",
    "Clause",
    "Definition",
    "DefinitionKind",
    "Direction",
    "Edge",
    "EdgeType",
    "ExtractionResult",
    "ImpactItem",
    "ImpactReport",
    "LineagePath",
    "LineageStep",
    "LineageTrace",
    "Node",
    "NodeKind",
    "ParseStatus",
    "Reference",
    "Severity",
    "SourceFile",
    # Exceptions
    "LineageError",
    "ConfigError",
    "FileUnavailable",
    "GraphInconsistency",
    "IOFailure",
    "NodeNotFoundError",
    "ParseFailure",
]
