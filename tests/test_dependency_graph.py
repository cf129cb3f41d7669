"""
Tests for DependencyGraph.
"""

import threading

import pytest

from workspace_lineage import DependencyGraph, ReferenceExtractor
from workspace_lineage.exceptions import GraphInconsistency
from workspace_lineage.models.graph import Direction, EdgeType, NodeKind
from workspace_lineage.models.reference import Clause, Definition, DefinitionKind, Reference


def _ref(name, path, line=1, statement=0, clause=Clause.FROM):
    return Reference(name, path, line, statement, clause)


def _view(name, path, line=1, statement=0):
    return Definition(name, DefinitionKind.VIEW, path, line, statement)


def _table(name, path, line=1, statement=0):
    return Definition(name, DefinitionKind.TABLE, path, line, statement)


class TestApplyFileResult:
    """Tests for replacing a file's contribution."""

    def setup_method(self):
        """Create a graph with a view defined in a.sql and read by b.sql."""
        self.graph = DependencyGraph()
        self.graph.apply_file_result("a.sql", [_ref("t", "a.sql")], [_view("v", "a.sql")])
        self.graph.apply_file_result("b.sql", [_ref("v", "b.sql")], [])

    def test_nodes_and_edges(self):
        """Test the nodes and edges produced by two files."""
        assert [n.id for n in self.graph.all_nodes()] == [
            "file:a.sql",
            "file:b.sql",
            "t",
            "v",
        ]
        edges = {(e.source, e.target, e.type) for e in self.graph.all_edges()}
        assert edges == {
            ("file:a.sql", "v", EdgeType.DEFINES),
            ("v", "t", EdgeType.REFERENCES),
            ("file:b.sql", "v", EdgeType.REFERENCES),
        }

    def test_node_attributes(self):
        """Test node kinds, provenance and missing definitions."""
        view = self.graph.get_node("v")
        assert view.kind == NodeKind.VIEW
        assert view.defining_files == {"a.sql"}
        assert view.referencing_files == {"b.sql"}
        assert not view.missing_definition

        table = self.graph.get_node("t")
        assert table.kind == NodeKind.TABLE
        assert table.missing_definition

        file_node = self.graph.get_node("file:b.sql")
        assert file_node.kind == NodeKind.FILE
        assert file_node.name == "b.sql"

    def test_reapply_is_idempotent(self):
        """Test that applying the same result twice changes nothing."""
        before = self.graph.to_dict()
        self.graph.apply_file_result("a.sql", [_ref("t", "a.sql")], [_view("v", "a.sql")])
        assert self.graph.to_dict() == before
        self.graph.check_invariants()

    def test_reapply_replaces_contribution(self):
        """Test that old edges of a file are removed on re-apply."""
        self.graph.apply_file_result("a.sql", [_ref("u", "a.sql")], [_view("v", "a.sql")])
        targets = [e.target for e in self.graph.neighbors("v", Direction.UPSTREAM)]
        assert targets == ["u"]
        assert not self.graph.has_node("t")
        self.graph.check_invariants()

    def test_remove_file_keeps_referenced_nodes(self):
        """Test deleting the defining file of a still-referenced view."""
        self.graph.remove_file("a.sql")
        view = self.graph.get_node("v")
        assert view is not None
        assert view.missing_definition
        assert self.graph.definitions_for("v") == []
        assert not self.graph.has_node("t")
        assert not self.graph.has_node("file:a.sql")
        assert self.graph.tracked_files() == ["b.sql"]
        self.graph.check_invariants()

    def test_remove_all_files_empties_graph(self):
        """Test that nodes are pruned when nothing refers to them."""
        self.graph.remove_file("a.sql")
        self.graph.remove_file("b.sql")
        assert self.graph.all_nodes() == []
        assert self.graph.all_edges() == []

    def test_ctes_never_reach_the_graph(self):
        """Test that CTE definitions are ignored."""
        cte = Definition("recent", DefinitionKind.CTE, "c.sql", 1, 0)
        self.graph.apply_file_result("c.sql", [_ref("orders", "c.sql")], [cte])
        assert not self.graph.has_node("recent")
        assert self.graph.has_node("orders")

    def test_write_target_owns_statement(self):
        """Test that INSERT targets read their sources."""
        self.graph.apply_file_result(
            "load.sql",
            [
                _ref("staging_orders", "load.sql", clause=Clause.INTO),
                _ref("orders", "load.sql", line=2),
            ],
            [],
        )
        upstream = [e.target for e in self.graph.neighbors("staging_orders", Direction.UPSTREAM)]
        assert upstream == ["orders"]
        downstream = [
            e.source for e in self.graph.neighbors("staging_orders", Direction.DOWNSTREAM)
        ]
        assert downstream == ["file:load.sql"]

    def test_parallel_edges_keep_provenance(self):
        """Test that the same dependency from two lines gives two edges."""
        self.graph.apply_file_result(
            "c.sql", [_ref("t", "c.sql", 1), _ref("t", "c.sql", 5)], []
        )
        edges = self.graph.edges_for_file("c.sql")
        assert [(e.target, e.line) for e in edges] == [("t", 1), ("t", 5)]


class TestLookups:
    """Tests for node lookup by name."""

    def setup_method(self):
        """Create a graph with qualified and unqualified names."""
        self.graph = DependencyGraph()
        self.graph.apply_file_result(
            "ddl.sql", [], [_table("sales.Orders", "ddl.sql")]
        )
        self.graph.apply_file_result("q.sql", [_ref("orders", "q.sql")], [])

    def test_case_insensitive_lookup(self):
        """Test that names are matched case-insensitively."""
        assert self.graph.find_node("SALES.ORDERS").id == "sales.orders"
        assert self.graph.get_node("sales.orders").name == "sales.Orders"

    def test_file_lookup(self):
        """Test lookup by file path."""
        assert self.graph.find_node("q.sql").kind == NodeKind.FILE
        assert self.graph.find_node("file:q.sql").id == "file:q.sql"

    def test_unqualified_reference_linked_to_definition(self):
        """Test that an unqualified reference is satisfied by a unique qualified definition."""
        assert not self.graph.get_node("orders").missing_definition
        assert self.graph.missing_definitions() == []

    def test_bare_name_lookup(self):
        """Test that a unique bare name finds the qualified node."""
        self.graph.remove_file("q.sql")
        assert self.graph.find_node("orders").id == "sales.orders"

    def test_ambiguous_bare_name(self):
        """Test that ambiguous bare names are not resolved."""
        self.graph.remove_file("q.sql")
        self.graph.apply_file_result("ddl2.sql", [], [_table("hr.orders", "ddl2.sql")])
        assert self.graph.find_node("orders") is None

    def test_linked_names_share_edges(self):
        """Test that a definition and its unqualified reference are traversed as one object."""
        readers = self.graph.neighbors("sales.orders", Direction.DOWNSTREAM)
        assert [(e.source, e.target) for e in readers] == [("file:q.sql", "orders")]
        assert self.graph.neighbors("orders", Direction.DOWNSTREAM) == readers
        assert self.graph.orphaned_definitions() == []

    def test_qualified_reference_to_unqualified_definition(self):
        """Test the reverse link: 'orders' defined, 'sales.orders' read."""
        graph = DependencyGraph()
        graph.apply_file_result("a.sql", [], [_table("orders", "a.sql")])
        graph.apply_file_result(
            "b.sql", [_ref("sales.orders", "b.sql")], [_view("v", "b.sql")]
        )
        assert not graph.get_node("sales.orders").missing_definition
        readers = graph.neighbors("orders", Direction.DOWNSTREAM)
        assert [(e.source, e.target) for e in readers] == [("v", "sales.orders")]

    def test_differently_qualified_names_stay_apart(self):
        """Test that 'hr.orders' is not linked to a 'sales.orders' definition."""
        self.graph.apply_file_result("hr.sql", [_ref("hr.orders", "hr.sql")], [])
        assert self.graph.get_node("hr.orders").missing_definition
        readers = self.graph.neighbors("hr.orders", Direction.DOWNSTREAM)
        assert [e.source for e in readers] == ["file:hr.sql"]

    def test_untracked_file_path_does_not_match_objects(self):
        """Test that a path-like name never falls back to a bare-name match."""
        self.graph.apply_file_result("misc.sql", [], [_table("sql", "misc.sql")])
        assert self.graph.find_node("x.sql") is None
        assert self.graph.find_node("reports/orders") is None
        assert self.graph.find_node("misc.sql").kind == NodeKind.FILE
        assert self.graph.find_node("sql").id == "sql"

    def test_unknown_name(self):
        """Test lookup of a name that is not in the graph."""
        assert self.graph.find_node("nothing_here") is None
        assert self.graph.get_node("nothing_here") is None
        assert self.graph.neighbors("nothing_here", Direction.UPSTREAM) == []


class TestGraphQueries:
    """Tests for cycles, orphans, statistics and exports."""

    def setup_method(self):
        """Create a graph with a two-view cycle and an orphan table."""
        self.graph = DependencyGraph()
        self.graph.apply_file_result("x.sql", [_ref("c2", "x.sql")], [_view("c1", "x.sql")])
        self.graph.apply_file_result("y.sql", [_ref("c1", "y.sql")], [_view("c2", "y.sql")])
        self.graph.apply_file_result("z.sql", [], [_table("lonely", "z.sql")])

    def test_circular_dependencies(self):
        """Test that a cycle is reported once, starting at its smallest id."""
        assert self.graph.detect_circular_dependencies() == [["c1", "c2"]]

    def test_file_edges_do_not_form_cycles(self):
        """Test that files reading objects never count as cycles."""
        self.graph.remove_file("y.sql")
        assert self.graph.detect_circular_dependencies() == []

    def test_orphaned_definitions(self):
        """Test defined objects with no readers."""
        assert [n.id for n in self.graph.orphaned_definitions()] == ["lonely"]

    def test_statistics(self):
        """Test the statistics summary."""
        stats = self.graph.get_statistics()
        assert stats["view_nodes"] == 2
        assert stats["table_nodes"] == 1
        assert stats["file_nodes"] == 3
        assert stats["defines_edges"] == 3
        assert stats["references_edges"] == 2
        assert stats["circular_dependencies"] == 1
        assert stats["orphaned_definitions"] == 1
        assert stats["missing_definitions"] == 0
        assert stats["tracked_files"] == 3

    def test_dot_export(self):
        """Test Graphviz output."""
        dot = self.graph.to_dot()
        assert dot.startswith("digraph workspace {")
        assert '"c1" -> "c2";' in dot
        assert '"file:x.sql" -> "c1" [style=dashed];' in dot
        assert dot.endswith("}")

    def test_mermaid_export(self):
        """Test Mermaid output."""
        lines = self.graph.to_mermaid().splitlines()
        assert lines[0] == "flowchart LR"
        assert any("-.->" in line for line in lines)

    def test_snapshot(self):
        """Test the dictionary snapshot."""
        data = self.graph.to_dict()
        assert sorted(data) == ["definitions", "edges", "nodes"]
        assert len(data["definitions"]) == 3
        assert {"source", "target", "type", "filePath", "line"} <= set(data["edges"][0])


class TestInvariants:
    """Tests for consistency checking and atomic updates."""

    def test_check_invariants_detects_corruption(self):
        """Test that a corrupted file index is reported."""
        graph = DependencyGraph()
        graph.apply_file_result("a.sql", [_ref("t", "a.sql")], [])
        graph.graph.add_edge("t", "u", type=EdgeType.REFERENCES, file_path="a.sql", line=1)
        with pytest.raises(GraphInconsistency):
            graph.check_invariants()

    def test_extracted_workspace_is_consistent(self):
        """Test invariants over a graph built from extracted SQL."""
        extractor = ReferenceExtractor()
        graph = DependencyGraph()
        files = {
            "a.sql": "CREATE VIEW v AS SELECT * FROM t JOIN u ON t.id = u.id",
            "b.sql": "INSERT INTO w SELECT * FROM v;\nSELECT * FROM w",
            "c.sql": "SEL * FROM broken JOIN v ON 1 = 1",
        }
        for path, sql in files.items():
            result = extractor.extract(sql, path)
            graph.apply_file_result(path, result.references, result.definitions)
        graph.check_invariants()
        for path in files:
            graph.remove_file(path)
            graph.check_invariants()
        assert graph.all_nodes() == []

    def test_readers_never_see_partial_updates(self):
        """Test that concurrent readers see one file state or the other."""
        graph = DependencyGraph()
        first = [_ref(f"a{i}", "a.sql", i + 1) for i in range(20)]
        second = [_ref(f"b{i}", "a.sql", i + 1) for i in range(20)]
        valid = {frozenset(r.key for r in first), frozenset(r.key for r in second)}
        graph.apply_file_result("a.sql", first, [])

        stop = threading.Event()
        errors = []

        def writer():
            for n in range(200):
                graph.apply_file_result("a.sql", second if n % 2 == 0 else first, [])
            stop.set()

        def reader():
            while not stop.is_set():
                targets = frozenset(e.target for e in graph.edges_for_file("a.sql"))
                if targets not in valid:
                    errors.append(targets)

        threads = [threading.Thread(target=writer)] + [
            threading.Thread(target=reader) for _ in range(3)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        graph.check_invariants()
