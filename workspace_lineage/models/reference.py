"""
Reference and definition records.

This module defines the records the reference extractor produces for a
single file: references (an object name read or written by a statement)
and definitions (objects a statement creates).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from workspace_lineage.utils.identifiers import normalize_identifier


class Clause(str, Enum):
    """Clause that produced a reference.

    INTO, UPDATE and DELETE name the object a statement writes; the others
    name objects it reads.
    """

    FROM = "from"
    JOIN = "join"
    INTO = "into"
    UPDATE = "update"
    DELETE = "delete"
    USING = "using"

    def is_write(self) -> bool:
        return self in (Clause.INTO, Clause.UPDATE, Clause.DELETE)


class DefinitionKind(str, Enum):
    """Kind of object a definition introduces."""

    TABLE = "table"
    VIEW = "view"
    CTE = "cte"


@dataclass(frozen=True)
class Reference:
    """A table/view name used by one statement.

    Attributes:
        name: Name as written (quotes removed, case preserved).
        file_path: File containing the statement.
        line: 1-based line of the name.
        statement_index: 0-based index of the statement in the file.
        clause: Clause the name appeared in.
        alias: Optional alias given to the source.

    Example:
        >>> ref = Reference("Sales.Orders", "q.sql", 3, 0, Clause.FROM, "o")
        >>> ref.key
        'sales.orders'
    """

    name: str
    file_path: str
    line: int
    statement_index: int
    clause: Clause = Clause.FROM
    alias: Optional[str] = None

    @property
    def key(self) -> str:
        """Case-insensitive identity of the referenced object."""
        return normalize_identifier(self.name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "alias": self.alias,
            "filePath": self.file_path,
            "line": self.line,
            "statementIndex": self.statement_index,
            "clause": self.clause.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reference":
        return cls(
            name=data["name"],
            file_path=data["filePath"],
            line=data["line"],
            statement_index=data["statementIndex"],
            clause=Clause(data["clause"]),
            alias=data.get("alias"),
        )


@dataclass(frozen=True)
class Definition:
    """An object created by a statement.

    Attributes:
        name: Name as written (quotes removed, case preserved).
        kind: TABLE, VIEW or CTE.
        file_path: Defining file.
        line: 1-based line of the name.
        statement_index: 0-based index of the statement in the file.
    """

    name: str
    kind: DefinitionKind
    file_path: str
    line: int
    statement_index: int = 0

    @property
    def key(self) -> str:
        return normalize_identifier(self.name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "filePath": self.file_path,
            "line": self.line,
            "statementIndex": self.statement_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Definition":
        return cls(
            name=data["name"],
            kind=DefinitionKind(data["kind"]),
            file_path=data["filePath"],
            line=data["line"],
            statement_index=data.get("statementIndex", 0),
        )
