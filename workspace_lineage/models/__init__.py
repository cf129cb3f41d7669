"""
Data models for workspace indexing.

This package contains the records exchanged between the extractor, the
dependency graph, the index manager and the analyzers: references and
definitions, the parsed statement model, graph nodes and edges, indexed file
records, lineage steps, impact reports and configuration.
"""

from workspace_lineage.models.ast import (
    CreateTarget,
    CteDeclaration,
    FunctionSource,
    Statement,
    TableSource,
)
from workspace_lineage.models.config import IndexConfig
from workspace_lineage.models.graph import Direction, Edge, EdgeType, Node, NodeKind
from workspace_lineage.models.impact import (
    ChangeType,
    ImpactItem,
    ImpactReport,
    ImpactSummary,
    ImpactType,
    Severity,
)
from workspace_lineage.models.lineage_path import LineageStep, LineageTrace
from workspace_lineage.models.reference import (
    Clause,
    Definition,
    DefinitionKind,
    Reference,
)
from workspace_lineage.models.source_file import ParseStatus, SourceFile
from workspace_lineage.models.statement_type import StatementType

__all__ = [
    "ChangeType",
    "Clause",
    "CreateTarget",
    "CteDeclaration",
    "Definition",
    "DefinitionKind",
    "Direction",
    "Edge",
    "EdgeType",
    "FunctionSource",
    "ImpactItem",
    "ImpactReport",
    "ImpactSummary",
    "ImpactType",
    "IndexConfig",
    "LineageStep",
    "LineageTrace",
    "Node",
    "NodeKind",
    "ParseStatus",
    "Reference",
    "Severity",
    "SourceFile",
    "Statement",
    "StatementType",
    "TableSource",
]
