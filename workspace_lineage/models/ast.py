"""
Statement model produced by the SQL parser.

The parser converts each sqlglot statement AST into this closed set of node
types. Consumers dispatch on the node class; anything the parser cannot
express with these nodes is reported as a ParseFailure instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from workspace_lineage.models.reference import Clause, DefinitionKind
from workspace_lineage.models.statement_type import StatementType


@dataclass(frozen=True)
class TableSource:
    """A named table or view read or written by a statement."""

    name: str
    clause: Clause
    line: int
    alias: Optional[str] = None


@dataclass(frozen=True)
class FunctionSource:
    """A call-shaped source such as ``FROM unnest(arr)``."""

    name: str
    clause: Clause
    line: int


@dataclass(frozen=True)
class CteDeclaration:
    """A ``WITH name AS (...)`` declaration."""

    name: str
    line: int


@dataclass(frozen=True)
class CreateTarget:
    """The object named by ``CREATE TABLE`` / ``CREATE VIEW``."""

    name: str
    kind: DefinitionKind
    line: int


StatementNode = Union[TableSource, FunctionSource, CteDeclaration, CreateTarget]


@dataclass
class Statement:
    """One parsed statement.

    Attributes:
        index: 0-based position among the non-empty statements of the file.
        statement_type: Classification of the statement.
        line: 1-based line of the first token.
        nodes: Nodes in order of appearance.
    """

    index: int
    statement_type: StatementType
    line: int
    nodes: list[StatementNode] = field(default_factory=list)

    def sources(self) -> list[TableSource]:
        return [n for n in self.nodes if isinstance(n, TableSource)]

    def ctes(self) -> list[CteDeclaration]:
        return [n for n in self.nodes if isinstance(n, CteDeclaration)]

    def create_target(self) -> Optional[CreateTarget]:
        for node in self.nodes:
            if isinstance(node, CreateTarget):
                return node
        return None
