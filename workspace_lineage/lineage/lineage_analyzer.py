"""
Lineage analyzer for workspace objects.

This module defines the LineageAnalyzer class, which traces what feeds into
(upstream) or what consumes (downstream) a node of the dependency graph. It
also finds the data-flow paths between two nodes and the two ends of the
flow: root sources and terminal nodes.
"""

from __future__ import annotations

from typing import Optional, Union

from workspace_lineage.exceptions import NodeNotFoundError
from workspace_lineage.graph.dependency_graph import DependencyGraph
from workspace_lineage.models.graph import Direction, Edge, EdgeType, Node, NodeKind
from workspace_lineage.models.lineage_path import LineagePath, LineageStep, LineageTrace

DEFAULT_MAX_DEPTH = 50


class LineageAnalyzer:
    """Breadth-first lineage tracing over ``references`` edges.

    The analyzer only reads the graph. Each neighbor query takes the graph
    lock briefly, so a trace never blocks indexing for long.

    Usage:
        analyzer = LineageAnalyzer(graph)

        # What does the view read?
        for step in analyzer.trace("v", Direction.UPSTREAM):
            print(step.depth, step.node.name)

        # Who reads the view?
        trace = analyzer.trace_lineage("v", "downstream")
        print(trace.names())
    """

    def __init__(self, graph: DependencyGraph, default_max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        """Initialize a LineageAnalyzer.

        Args:
            graph: Dependency graph to trace.
            default_max_depth: Depth limit used when a trace gives none.
        """
        self.graph = graph
        self.default_max_depth = default_max_depth

    def resolve(self, name: str) -> Node:
        """Resolve a name, file path or node id to a graph node.

        Raises:
            NodeNotFoundError: If nothing matches.
        """
        node = self.graph.get_node(name) or self.graph.find_node(name)
        if node is None:
            raise NodeNotFoundError(name)
        return node

    def trace(
        self,
        node_id: str,
        direction: Union[Direction, str],
        max_depth: Optional[int] = None,
    ) -> list[LineageStep]:
        """Trace a node level by level.

        Upstream follows out-edges (what the node reads); downstream follows
        in-edges (who reads it). A node reached at several depths is
        reported once, at the depth it was first seen. Nodes at the same
        depth are sorted by name.

        Args:
            node_id: Node identifier, object name or file path.
            direction: UPSTREAM or DOWNSTREAM.
            max_depth: Maximum number of hops; defaults to the analyzer's
                default.

        Returns:
            Steps in breadth-first order.

        Raises:
            NodeNotFoundError: If the node is not in the graph.
            ValueError: If ``max_depth`` is less than 1 or the direction is
                unknown.

        Example:
            >>> [s.node.name for s in analyzer.trace("v", "upstream")]
            ['t']
        """
        return self.trace_lineage(node_id, direction, max_depth).steps

    def trace_lineage(
        self,
        node_id: str,
        direction: Union[Direction, str],
        max_depth: Optional[int] = None,
    ) -> LineageTrace:
        """Like ``trace`` but returns a LineageTrace with its root."""
        depth_limit = self.default_max_depth if max_depth is None else max_depth
        if depth_limit < 1:
            raise ValueError(f"max_depth must be at least 1, got {depth_limit}")
        direction = Direction(direction)
        root = self.resolve(node_id)

        visited = {root.id}
        steps: list[LineageStep] = []
        frontier = [root.id]
        for depth in range(1, depth_limit + 1):
            reached: dict[str, Edge] = {}
            for current in frontier:
                for edge in self.graph.neighbors(current, direction, EdgeType.REFERENCES):
                    other = edge.target if direction == Direction.UPSTREAM else edge.source
                    if other in visited or other in reached:
                        continue
                    reached[other] = edge

            level = []
            for other, edge in reached.items():
                node = self.graph.get_node(other)
                # Removed by a concurrent mutation between queries.
                if node is None:
                    continue
                level.append(LineageStep(node=node, depth=depth, via_edge=edge))
            level.sort(key=lambda step: (step.node.name.lower(), step.node.id))

            if not level:
                break
            steps.extend(level)
            visited.update(step.node.id for step in level)
            frontier = [step.node.id for step in level]

        return LineageTrace(root=root, direction=direction, max_depth=depth_limit, steps=steps)

    def find_paths(
        self, source: str, target: str, max_depth: Optional[int] = None
    ) -> list[LineagePath]:
        """Find every data-flow path from ``source`` to ``target``.

        Data flows from an object to whatever reads it, so the search runs
        downstream from ``source``. Paths never repeat a node; a node has
        no path to itself.

        Args:
            source: Where the data starts (e.g. a table).
            target: Where it ends up (e.g. a view or a query file).
            max_depth: Maximum path length in hops.

        Returns:
            Paths sorted by length, then by node ids. Empty when ``target``
            does not depend on ``source``.

        Raises:
            NodeNotFoundError: If either node is not in the graph.

        Example:
            >>> [p.names() for p in analyzer.find_paths("t", "v2")]
            [['t', 'v1', 'v2']]
        """
        depth_limit = self.default_max_depth if max_depth is None else max_depth
        if depth_limit < 1:
            raise ValueError(f"max_depth must be at least 1, got {depth_limit}")
        start = self.resolve(source)
        end = self.resolve(target)

        paths: list[LineagePath] = []
        nodes = [start]
        edges: list[Edge] = []
        on_path = {start.id}

        def extend(current: str) -> None:
            if current == end.id and edges:
                paths.append(LineagePath(nodes=list(nodes), edges=list(edges)))
                return
            if len(edges) >= depth_limit:
                return
            for edge in self.graph.neighbors(current, Direction.DOWNSTREAM, EdgeType.REFERENCES):
                if edge.source in on_path:
                    continue
                node = self.graph.get_node(edge.source)
                if node is None:
                    continue
                on_path.add(node.id)
                nodes.append(node)
                edges.append(edge)
                extend(node.id)
                on_path.discard(node.id)
                nodes.pop()
                edges.pop()

        extend(start.id)
        paths.sort(key=lambda path: (path.depth, [node.id for node in path.nodes]))
        return paths

    def find_root_sources(self) -> list[Node]:
        """Objects that read nothing: where data enters the workspace.

        Example:
            >>> [n.name for n in analyzer.find_root_sources()]
            ['dim_users', 't']
        """
        roots = []
        for node in self.graph.all_nodes():
            if node.kind == NodeKind.FILE or _is_alias(node):
                continue
            if not self.graph.neighbors(node.id, Direction.UPSTREAM, EdgeType.REFERENCES):
                roots.append(node)
        return sorted(roots, key=lambda node: (node.name.lower(), node.id))

    def find_terminal_nodes(self) -> list[Node]:
        """Nodes nothing reads: where data leaves the workspace.

        Files only count when they read something, so a file that just
        defines objects is not a terminal node.

        Example:
            >>> [n.name for n in analyzer.find_terminal_nodes()]
            ['c.sql']
        """
        terminals = []
        for node in self.graph.all_nodes():
            if _is_alias(node):
                continue
            if node.kind == NodeKind.FILE and not self.graph.neighbors(
                node.id, Direction.UPSTREAM, EdgeType.REFERENCES
            ):
                continue
            if not self.graph.neighbors(node.id, Direction.DOWNSTREAM, EdgeType.REFERENCES):
                terminals.append(node)
        return sorted(terminals, key=lambda node: (node.name.lower(), node.id))


def _is_alias(node: Node) -> bool:
    # Another spelling of an object defined under a different name.
    return node.kind != NodeKind.FILE and not node.defining_files and not node.missing_definition
