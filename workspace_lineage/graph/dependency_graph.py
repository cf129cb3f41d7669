"""
Dependency graph for workspace lineage.

This module defines the DependencyGraph class, which uses networkx to hold
the object-level dependency graph of a workspace. Nodes are database
objects (tables and views) and files; edges are typed and carry the file
and line that produced them.

The graph is changed one file at a time. ``apply_file_result`` replaces
everything a file contributed with a new set, and ``remove_file`` drops it.
Both run under a single re-entrant lock, and so do all reads, so a reader
never sees half of a file's contribution.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any, Iterable, Optional

import networkx as nx

from workspace_lineage.exceptions import GraphInconsistency
from workspace_lineage.models.graph import Direction, Edge, EdgeType, Node, NodeKind
from workspace_lineage.models.reference import Definition, DefinitionKind, Reference
from workspace_lineage.utils.identifiers import (
    bare_name,
    file_node_id,
    is_file_node_id,
    looks_like_path,
    normalize_identifier,
)

_EdgeKey = tuple[str, str, int]


class DependencyGraph:
    """Object-level dependency graph.

    Attributes:
        graph: networkx MultiDiGraph holding nodes and provenanced edges.
            Treat it as read-only; mutate through ``apply_file_result``
            and ``remove_file``.

    Example:
        >>> graph = DependencyGraph()
        >>> graph.apply_file_result(
        ...     "a.sql",
        ...     [Reference("t", "a.sql", 1, 0)],
        ...     [Definition("v", DefinitionKind.VIEW, "a.sql", 1, 0)],
        ... )
        >>> [edge.target for edge in graph.neighbors("v", Direction.UPSTREAM)]
        ['t']
        >>> graph.get_node("t").missing_definition
        True
    """

    def __init__(self) -> None:
        """Initialize an empty DependencyGraph."""
        self.graph = nx.MultiDiGraph()
        self._lock = threading.RLock()
        self._files: set[str] = set()
        self._edges_by_file: dict[str, list[_EdgeKey]] = {}
        self._definitions_by_file: dict[str, list[Definition]] = {}
        self._definitions_by_node: dict[str, list[Definition]] = defaultdict(list)
        self._nodes_by_bare: dict[str, set[str]] = defaultdict(set)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def apply_file_result(
        self,
        file_path: str,
        references: Iterable[Reference],
        definitions: Iterable[Definition],
    ) -> None:
        """Replace a file's contribution with a new one.

        Everything provenanced to ``file_path`` is removed first, then the
        new edges and definitions are added, then unused nodes are pruned.
        Applying the same result twice leaves the graph unchanged.

        CTE definitions are ignored; they never reach the graph.

        Args:
            file_path: The file whose contribution is replaced.
            references: References extracted from the file.
            definitions: Definitions extracted from the file.
        """
        references = list(references)
        objects = [d for d in definitions if d.kind != DefinitionKind.CTE]

        with self._lock:
            touched = self._remove_file_locked(file_path)
            self._files.add(file_path)
            self._edges_by_file[file_path] = []
            self._definitions_by_file[file_path] = objects

            file_id = file_node_id(file_path)
            for definition in objects:
                self._definitions_by_node[definition.key].append(definition)

            statements = sorted(
                {ref.statement_index for ref in references}
                | {d.statement_index for d in objects}
            )
            for index in statements:
                stmt_refs = [r for r in references if r.statement_index == index]
                stmt_defs = [d for d in objects if d.statement_index == index]
                owner = self._owner_for(file_path, file_id, stmt_refs, stmt_defs)

                for ref in stmt_refs:
                    target = ref.key
                    if target == owner:
                        continue
                    self._add_edge(
                        owner, target, EdgeType.REFERENCES, file_path, ref.line, ref.name
                    )

            self._prune(touched)

    def _owner_for(
        self,
        file_path: str,
        file_id: str,
        refs: list[Reference],
        defs: list[Definition],
    ) -> str:
        """Add the statement's owner edges and return the owner node id."""
        if defs:
            for definition in defs:
                self._add_edge(
                    file_id,
                    definition.key,
                    EdgeType.DEFINES,
                    file_path,
                    definition.line,
                    definition.name,
                )
            return defs[0].key

        for ref in refs:
            if ref.clause.is_write():
                self._add_edge(
                    file_id, ref.key, EdgeType.REFERENCES, file_path, ref.line, ref.name
                )
                return ref.key

        return file_id

    def remove_file(self, file_path: str) -> None:
        """Remove everything provenanced to a file."""
        with self._lock:
            touched = self._remove_file_locked(file_path)
            self._files.discard(file_path)
            self._prune(touched)

    def _remove_file_locked(self, file_path: str) -> set[str]:
        touched: set[str] = set()
        for u, v, key in self._edges_by_file.pop(file_path, []):
            if self.graph.has_edge(u, v, key):
                self.graph.remove_edge(u, v, key)
            touched.update((u, v))

        for definition in self._definitions_by_file.pop(file_path, []):
            remaining = [
                d
                for d in self._definitions_by_node.get(definition.key, [])
                if d.file_path != file_path
            ]
            if remaining:
                self._definitions_by_node[definition.key] = remaining
            else:
                self._definitions_by_node.pop(definition.key, None)
            touched.add(definition.key)
        return touched

    def _add_edge(
        self,
        source: str,
        target: str,
        edge_type: EdgeType,
        file_path: str,
        line: int,
        display_name: str,
    ) -> None:
        self._ensure_node(source, file_path if is_file_node_id(source) else source)
        self._ensure_node(target, display_name)
        key = self.graph.add_edge(
            source, target, type=edge_type, file_path=file_path, line=line
        )
        self._edges_by_file[file_path].append((source, target, key))

    def _ensure_node(self, node_id: str, display_name: str) -> None:
        if node_id not in self.graph:
            self.graph.add_node(node_id, name=display_name)
            if not is_file_node_id(node_id):
                self._nodes_by_bare[bare_name(node_id)].add(node_id)

    def _prune(self, candidates: Iterable[str]) -> None:
        for node_id in candidates:
            if node_id not in self.graph:
                continue
            if self.graph.degree(node_id) == 0 and not self._definitions_by_node.get(
                node_id
            ):
                self.graph.remove_node(node_id)
                peers = self._nodes_by_bare.get(bare_name(node_id))
                if peers is not None:
                    peers.discard(node_id)
                    if not peers:
                        del self._nodes_by_bare[bare_name(node_id)]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def neighbors(
        self,
        node_id: str,
        direction: Direction,
        edge_type: Optional[EdgeType] = EdgeType.REFERENCES,
    ) -> list[Edge]:
        """Edges leading to a node's neighbors in one direction.

        Upstream returns the node's out-edges (objects it reads); downstream
        returns its in-edges (nodes that read it).

        A qualified and an unqualified name that resolve to the same
        definition are one object here: the edges of ``orders`` and of
        ``sales.orders`` are both returned for either id when only
        ``orders`` is defined. Edges keep their recorded endpoints.

        Args:
            node_id: Node identifier.
            direction: UPSTREAM or DOWNSTREAM.
            edge_type: Edge type to follow; None follows every type.

        Returns:
            Edges sorted by endpoint, file and line. Empty for an unknown
            node.
        """
        direction = Direction(direction)
        with self._lock:
            if node_id not in self.graph:
                return []
            group = self._equivalent_nodes(node_id)
            raw = []
            for member in group:
                if direction == Direction.UPSTREAM:
                    raw.extend(self.graph.out_edges(member, data=True))
                else:
                    raw.extend(self.graph.in_edges(member, data=True))
            edges = [
                self._to_edge(u, v, data)
                for u, v, data in raw
                if (edge_type is None or data["type"] == edge_type)
                and not (u in group and v in group)
            ]
        return sorted(edges, key=_edge_sort_key)

    def find_node(self, name: str) -> Optional[Node]:
        """Look a node up by object name or file path.

        Falls back to a unique bare-name match when the exact identity is
        not in the graph: ``orders`` finds ``sales.orders`` if that is the
        only object named ``orders``, and ``sales.orders`` finds
        ``orders``. A name that looks like a file path never falls back,
        so an untracked ``x.sql`` does not find a table named ``sql``.

        Example:
            >>> graph.find_node("ORDERS").id
            'orders'
        """
        with self._lock:
            if file_node_id(name) in self.graph:
                return self._materialize(file_node_id(name))
            if is_file_node_id(name) and name in self.graph:
                return self._materialize(name)

            key = normalize_identifier(name)
            if not key:
                return None
            if key in self.graph:
                return self._materialize(key)
            if is_file_node_id(name) or looks_like_path(name):
                return None

            match = self._bare_match(key)
            return self._materialize(match) if match else None

    def _bare_match(self, key: str) -> Optional[str]:
        bare = bare_name(key)
        if "." in key:
            return bare if bare in self.graph else None
        candidates = [
            node_id
            for node_id in self.graph.nodes
            if not is_file_node_id(node_id) and "." in node_id and bare_name(node_id) == bare
        ]
        return candidates[0] if len(candidates) == 1 else None

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by exact identifier."""
        with self._lock:
            if node_id not in self.graph:
                return None
            return self._materialize(node_id)

    def has_node(self, node_id: str) -> bool:
        with self._lock:
            return node_id in self.graph

    def all_nodes(self) -> list[Node]:
        """All nodes sorted by identifier."""
        with self._lock:
            return [self._materialize(node_id) for node_id in sorted(self.graph.nodes)]

    def all_edges(self) -> list[Edge]:
        with self._lock:
            edges = [self._to_edge(u, v, data) for u, v, data in self.graph.edges(data=True)]
        return sorted(edges, key=_edge_sort_key)

    def edges_for_file(self, file_path: str) -> list[Edge]:
        """Edges provenanced to one file."""
        with self._lock:
            edges = [
                self._to_edge(u, v, self.graph.edges[u, v, key])
                for u, v, key in self._edges_by_file.get(file_path, [])
            ]
        return sorted(edges, key=_edge_sort_key)

    def definitions_for(self, node_id: str) -> list[Definition]:
        """Table/view definitions of an object, sorted by file and line."""
        with self._lock:
            definitions = list(self._definitions_by_node.get(node_id, []))
        return sorted(definitions, key=lambda d: (d.file_path, d.line))

    def tracked_files(self) -> list[str]:
        with self._lock:
            return sorted(self._files)

    def missing_definitions(self) -> list[Node]:
        """Objects that are referenced but defined in no indexed file."""
        return [node for node in self.all_nodes() if node.missing_definition]

    def orphaned_definitions(self) -> list[Node]:
        """Defined objects that nothing references."""
        with self._lock:
            orphans = []
            for node_id in sorted(self._definitions_by_node):
                if node_id not in self.graph:
                    continue
                if not any(
                    data["type"] == EdgeType.REFERENCES
                    for member in self._equivalent_nodes(node_id)
                    for _, _, data in self.graph.in_edges(member, data=True)
                ):
                    orphans.append(self._materialize(node_id))
            return orphans

    def detect_circular_dependencies(self) -> list[list[str]]:
        """Find cycles among object-to-object references.

        Each elementary cycle is reported once, rotated so it starts at its
        smallest node id. The result is sorted.

        Example:
            v1 reads v2 and v2 reads v1 -> [["v1", "v2"]]
        """
        with self._lock:
            objects = nx.DiGraph()
            for u, v, data in self.graph.edges(data=True):
                if data["type"] != EdgeType.REFERENCES:
                    continue
                if is_file_node_id(u) or is_file_node_id(v) or u == v:
                    continue
                objects.add_edge(u, v)

        cycles = set()
        for cycle in nx.simple_cycles(objects):
            start = cycle.index(min(cycle))
            cycles.add(tuple(cycle[start:] + cycle[:start]))
        return [list(cycle) for cycle in sorted(cycles)]

    def check_invariants(self) -> None:
        """Verify the graph's bookkeeping.

        Raises:
            GraphInconsistency: On a dangling edge, an edge or definition
                whose file is not tracked, or an edge missing from its
                file's index.
        """
        with self._lock:
            indexed: set[_EdgeKey] = set()
            for file_path, keys in self._edges_by_file.items():
                if file_path not in self._files:
                    raise GraphInconsistency(
                        f"Edges recorded for untracked file '{file_path}'"
                    )
                for u, v, key in keys:
                    if not self.graph.has_edge(u, v, key):
                        raise GraphInconsistency(
                            f"Edge {u} -> {v} of '{file_path}' is not in the graph"
                        )
                    indexed.add((u, v, key))

            for u, v, key, data in self.graph.edges(keys=True, data=True):
                if u not in self.graph or v not in self.graph:
                    raise GraphInconsistency(f"Dangling edge {u} -> {v}")
                if data["file_path"] not in self._files:
                    raise GraphInconsistency(
                        f"Edge {u} -> {v} provenanced to untracked file "
                        f"'{data['file_path']}'"
                    )
                if (u, v, key) not in indexed:
                    raise GraphInconsistency(f"Edge {u} -> {v} has no file index entry")

            for node_id, definitions in self._definitions_by_node.items():
                if node_id not in self.graph:
                    raise GraphInconsistency(f"Definition of '{node_id}' has no node")
                for definition in definitions:
                    if definition.file_path not in self._files:
                        raise GraphInconsistency(
                            f"Definition of '{node_id}' in untracked file "
                            f"'{definition.file_path}'"
                        )

            for node_id in self.graph.nodes:
                if self.graph.degree(node_id) == 0 and not self._definitions_by_node.get(
                    node_id
                ):
                    raise GraphInconsistency(f"Unpruned node '{node_id}'")

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Export a consistent snapshot of the graph.

        Returns:
            Dictionary with ``nodes``, ``edges`` and ``definitions`` lists.

        Example:
            >>> data = graph.to_dict()
            >>> sorted(data)
            ['definitions', 'edges', 'nodes']
        """
        with self._lock:
            nodes = self.all_nodes()
            edges = self.all_edges()
            definitions = [
                d
                for node_id in sorted(self._definitions_by_node)
                for d in self.definitions_for(node_id)
            ]
        return {
            "nodes": [node.to_dict() for node in nodes],
            "edges": [edge.to_dict() for edge in edges],
            "definitions": [d.to_dict() for d in definitions],
        }

    def get_statistics(self) -> dict[str, int]:
        """Get graph statistics.

        Returns:
            Dictionary with node counts by kind, edge counts by type,
            missing and orphaned definition counts, cycle count and the
            number of tracked files.
        """
        with self._lock:
            nodes = self.all_nodes()
            edges = self.all_edges()
            orphaned = len(self.orphaned_definitions())
            cycles = len(self.detect_circular_dependencies())
            tracked = len(self._files)

        return {
            "total_nodes": len(nodes),
            "table_nodes": sum(1 for n in nodes if n.kind == NodeKind.TABLE),
            "view_nodes": sum(1 for n in nodes if n.kind == NodeKind.VIEW),
            "file_nodes": sum(1 for n in nodes if n.kind == NodeKind.FILE),
            "total_edges": len(edges),
            "references_edges": sum(1 for e in edges if e.type == EdgeType.REFERENCES),
            "defines_edges": sum(1 for e in edges if e.type == EdgeType.DEFINES),
            "missing_definitions": sum(1 for n in nodes if n.missing_definition),
            "orphaned_definitions": orphaned,
            "circular_dependencies": cycles,
            "tracked_files": tracked,
        }

    def to_dot(self) -> str:
        """Export the graph to Graphviz DOT format.

        Files are drawn as notes, views as ellipses and tables as boxes.
        Objects with a missing definition are dashed, as are defines edges.

        Example:
            >>> "digraph workspace" in graph.to_dot()
            True
        """
        shapes = {NodeKind.FILE: "note", NodeKind.VIEW: "ellipse", NodeKind.TABLE: "box"}
        lines = ["digraph workspace {", "  rankdir=LR;"]
        for node in self.all_nodes():
            attrs = [f'label="{_dot_escape(node.name)}"', f"shape={shapes[node.kind]}"]
            if node.missing_definition:
                attrs.append("style=dashed")
            lines.append(f'  "{_dot_escape(node.id)}" [{", ".join(attrs)}];')
        for edge in self._distinct_edges():
            style = " [style=dashed]" if edge[2] == EdgeType.DEFINES else ""
            lines.append(f'  "{_dot_escape(edge[0])}" -> "{_dot_escape(edge[1])}"{style};')
        lines.append("}")
        return "\n".join(lines)

    def to_mermaid(self) -> str:
        """Export the graph as a Mermaid flowchart.

        Example:
            >>> graph.to_mermaid().splitlines()[0]
            'flowchart LR'
        """
        nodes = self.all_nodes()
        ids = {node.id: f"n{i}" for i, node in enumerate(nodes)}
        lines = ["flowchart LR"]
        for node in nodes:
            label = _mermaid_escape(node.name)
            if node.kind == NodeKind.FILE:
                lines.append(f'  {ids[node.id]}[/"{label}"/]')
            elif node.kind == NodeKind.VIEW:
                lines.append(f'  {ids[node.id]}("{label}")')
            else:
                lines.append(f'  {ids[node.id]}["{label}"]')
        for source, target, edge_type in self._distinct_edges():
            arrow = "-.->" if edge_type == EdgeType.DEFINES else "-->"
            lines.append(f"  {ids[source]} {arrow} {ids[target]}")
        for node in nodes:
            if node.missing_definition:
                lines.append(f"  style {ids[node.id]} stroke-dasharray: 5 5")
        return "\n".join(lines)

    def _distinct_edges(self) -> list[tuple[str, str, EdgeType]]:
        seen = []
        for edge in self.all_edges():
            item = (edge.source, edge.target, edge.type)
            if item not in seen:
                seen.append(item)
        return seen

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _materialize(self, node_id: str) -> Node:
        if is_file_node_id(node_id):
            return Node(
                id=node_id,
                name=self.graph.nodes[node_id]["name"],
                kind=NodeKind.FILE,
            )

        definitions = self._definitions_by_node.get(node_id, [])
        kind = NodeKind.TABLE
        if any(d.kind == DefinitionKind.VIEW for d in definitions):
            kind = NodeKind.VIEW
        referencing = {
            data["file_path"]
            for _, _, data in self.graph.in_edges(node_id, data=True)
            if data["type"] == EdgeType.REFERENCES
        }
        return Node(
            id=node_id,
            name=self.graph.nodes[node_id]["name"],
            kind=kind,
            defining_files={d.file_path for d in definitions},
            referencing_files=referencing,
            missing_definition=not self._is_defined(node_id),
        )

    def _is_defined(self, node_id: str) -> bool:
        if self._definitions_by_node.get(node_id):
            return True
        return self._linked_definition(node_id) is not None

    def _linked_definition(self, node_id: str) -> Optional[str]:
        """The defined node an undefined object name resolves to, if unique."""
        if is_file_node_id(node_id) or self._definitions_by_node.get(node_id):
            return None
        defined = [
            other
            for other in self._nodes_by_bare.get(bare_name(node_id), ())
            if self._definitions_by_node.get(other)
        ]
        if len(defined) != 1:
            return None
        other = defined[0]
        # Only a qualified/unqualified pair links: "t" and "s.t", not "a.t" and "b.t".
        if "." in node_id and "." in other:
            return None
        return other

    def _equivalent_nodes(self, node_id: str) -> set[str]:
        """Node ids that name the same object as ``node_id``."""
        if is_file_node_id(node_id):
            return {node_id}
        if self._definitions_by_node.get(node_id):
            anchor = node_id
        else:
            anchor = self._linked_definition(node_id)
        if anchor is None:
            return {node_id}
        group = {anchor}
        for other in self._nodes_by_bare.get(bare_name(anchor), ()):
            if self._linked_definition(other) == anchor:
                group.add(other)
        return group

    @staticmethod
    def _to_edge(u: str, v: str, data: dict[str, Any]) -> Edge:
        return Edge(
            source=u,
            target=v,
            type=data["type"],
            file_path=data["file_path"],
            line=data["line"],
        )


def _edge_sort_key(edge: Edge) -> tuple[str, str, str, str, int]:
    return (edge.source, edge.target, edge.type.value, edge.file_path, edge.line)


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _mermaid_escape(text: str) -> str:
    return text.replace('"', "#quot;")
