"""
Graph node and edge records.

These are the plain data records the dependency graph hands out. The graph
stores its state in networkx; nodes and edges are materialized into these
dataclasses on read so callers never hold references into graph internals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    TABLE = "table"
    VIEW = "view"
    FILE = "file"


class EdgeType(str, Enum):
    """Edge types.

    REFERENCES points from the reader (file or object) to the object read.
    DEFINES points from a file to an object it creates.
    """

    REFERENCES = "references"
    DEFINES = "defines"


class Direction(str, Enum):
    """Traversal direction.

    UPSTREAM walks towards the objects a node reads; DOWNSTREAM walks
    towards the nodes that read it.
    """

    UPSTREAM = "upstream"
    DOWNSTREAM = "downstream"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


@dataclass
class Node:
    """A file or database object in the dependency graph.

    Attributes:
        id: Normalized object name, or ``file:<path>`` for files.
        name: Display name (first spelling seen, or the file path).
        kind: TABLE, VIEW or FILE.
        defining_files: Files holding a CREATE for the object.
        referencing_files: Files whose statements read the object.
        missing_definition: True for an object no indexed file defines.
    """

    id: str
    name: str
    kind: NodeKind
    defining_files: set[str] = field(default_factory=set)
    referencing_files: set[str] = field(default_factory=set)
    missing_definition: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "definingFiles": sorted(self.defining_files),
            "referencingFiles": sorted(self.referencing_files),
            "missingDefinition": self.missing_definition,
        }


@dataclass(frozen=True)
class Edge:
    """A typed, provenanced edge.

    Attributes:
        source: Node id the edge starts at.
        target: Node id the edge points to.
        type: REFERENCES or DEFINES.
        file_path: File whose content produced the edge.
        line: 1-based line in that file.
    """

    source: str
    target: str
    type: EdgeType
    file_path: str
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "type": self.type.value,
            "filePath": self.file_path,
            "line": self.line,
        }
