"""
Lineage trace model.

This module defines LineageStep (one node reached by a lineage trace),
LineageTrace (the ordered result of a trace) and LineagePath (one
data-flow path between two nodes).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from workspace_lineage.models.graph import Direction, Edge, Node


@dataclass(frozen=True)
class LineageStep:
    """A node reached by a lineage trace.

    Attributes:
        node: The node reached.
        depth: Number of hops from the traced node (1 = direct).
        via_edge: The edge followed to first reach the node.
    """

    node: Node
    depth: int
    via_edge: Edge

    def to_dict(self) -> dict[str, Any]:
        return {
            "node": self.node.to_dict(),
            "depth": self.depth,
            "viaEdge": self.via_edge.to_dict(),
        }

    def __repr__(self) -> str:
        return f"LineageStep({self.node.name!r}, depth={self.depth})"


@dataclass
class LineageTrace:
    """Ordered result of tracing one node in one direction.

    Attributes:
        root: The traced node.
        direction: UPSTREAM or DOWNSTREAM.
        max_depth: Depth limit used.
        steps: Steps in breadth-first order.

    Example:
        v upstream -> [t (depth 1)]
        v downstream -> [b.sql (depth 1)]
    """

    root: Node
    direction: Direction
    max_depth: int
    steps: list[LineageStep] = field(default_factory=list)

    def names(self) -> list[str]:
        """Display names of the reached nodes, in order."""
        return [step.node.name for step in self.steps]

    def at_depth(self, depth: int) -> list[LineageStep]:
        return [step for step in self.steps if step.depth == depth]

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root.to_dict(),
            "direction": self.direction.value,
            "maxDepth": self.max_depth,
            "steps": [step.to_dict() for step in self.steps],
        }


@dataclass
class LineagePath:
    """One data-flow path between two nodes.

    Nodes run from the data source to the consumer; ``edges[i]`` links
    ``nodes[i]`` and ``nodes[i + 1]``.

    Example:
        t -> v1 -> v2: nodes [t, v1, v2], depth 2
    """

    nodes: list[Node]
    edges: list[Edge]

    @property
    def depth(self) -> int:
        return len(self.edges)

    def names(self) -> list[str]:
        return [node.name for node in self.nodes]

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "depth": self.depth,
        }
