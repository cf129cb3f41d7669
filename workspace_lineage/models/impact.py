"""
Impact analysis report model.

This module defines the ChangeType and Severity enums and the records that
make up an ImpactReport. Reports are computed per request and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from workspace_lineage.models.graph import Node


class ChangeType(str, Enum):
    """Hypothetical change applied to the target object."""

    DROP = "drop"
    RENAME = "rename"
    ALTER = "alter"
    MODIFY = "modify"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class Severity(str, Enum):
    """Impact severity, ordered from NONE to CRITICAL.

    Example:
        >>> Severity.HIGH > Severity.MEDIUM
        True
        >>> Severity.MEDIUM.escalate()
        <Severity.HIGH: 'high'>
        >>> Severity.CRITICAL.escalate()
        <Severity.CRITICAL: 'critical'>
    """

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def escalate(self) -> "Severity":
        """Return the next level up, capped at CRITICAL."""
        return _SEVERITY_ORDER[min(self.rank + 1, len(_SEVERITY_ORDER) - 1)]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_ORDER = [
    Severity.NONE,
    Severity.LOW,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
]


class ImpactType(str, Enum):
    DIRECT = "direct"
    TRANSITIVE = "transitive"


@dataclass
class ImpactItem:
    """One node affected by the change.

    Attributes:
        node: The affected node.
        impact_type: DIRECT (one hop) or TRANSITIVE.
        depth: Hops from the target.
        severity: Severity for this node.
        reason: Human-readable explanation.
        file_path: Provenance file of the edge that reached the node.
        line: Provenance line of that edge.
    """

    node: Node
    impact_type: ImpactType
    depth: int
    severity: Severity
    reason: str
    file_path: str
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "node": self.node.to_dict(),
            "impactType": self.impact_type.value,
            "depth": self.depth,
            "severity": self.severity.value,
            "reason": self.reason,
            "filePath": self.file_path,
            "lineNumber": self.line,
        }


@dataclass
class ImpactSummary:
    total_affected: int = 0
    tables_affected: int = 0
    views_affected: int = 0
    queries_affected: int = 0
    files_affected: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalAffected": self.total_affected,
            "tablesAffected": self.tables_affected,
            "viewsAffected": self.views_affected,
            "queriesAffected": self.queries_affected,
            "filesAffected": self.files_affected,
        }


@dataclass
class ImpactReport:
    """Result of analyzing a hypothetical change.

    Attributes:
        target: Name of the target as requested.
        change_type: The analyzed change.
        severity: Maximum item severity, NONE when nothing is affected.
        direct_impacts: Consumers one hop downstream.
        transitive_impacts: Consumers further downstream.
        suggestions: Free-text recommendations.
        summary: Aggregated counts.
        found: False when the target is not in the graph.
        target_node: The resolved node, when found.
    """

    target: str
    change_type: ChangeType
    severity: Severity = Severity.NONE
    direct_impacts: list[ImpactItem] = field(default_factory=list)
    transitive_impacts: list[ImpactItem] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    summary: ImpactSummary = field(default_factory=ImpactSummary)
    found: bool = True
    target_node: Optional[Node] = None

    @property
    def all_impacts(self) -> list[ImpactItem]:
        return self.direct_impacts + self.transitive_impacts

    def to_dict(self) -> dict[str, Any]:
        return {
            "changeType": self.change_type.value,
            "target": {
                "name": self.target,
                "type": self.target_node.kind.value if self.target_node else None,
                "found": self.found,
            },
            "severity": self.severity.value,
            "summary": self.summary.to_dict(),
            "directImpacts": [item.to_dict() for item in self.direct_impacts],
            "transitiveImpacts": [item.to_dict() for item in self.transitive_impacts],
            "suggestions": list(self.suggestions),
        }
