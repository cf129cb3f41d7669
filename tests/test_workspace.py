"""
End-to-end tests for WorkspaceSession.
"""

import pytest

from workspace_lineage import (
    ChangeType,
    Direction,
    IndexConfig,
    LineageError,
    NodeNotFoundError,
    ParseStatus,
    Severity,
    WorkspaceSession,
)


class TestWorkspaceSession:
    """Tests for a session over a small workspace."""

    def setup_method(self):
        """Nothing shared; each test builds its own workspace."""
        self.config = IndexConfig(max_workers=2, debounce_seconds=30)

    def _write(self, root, files):
        for path, sql in files.items():
            target = root / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(sql, encoding="utf-8")

    def test_view_lineage(self, tmp_path):
        """Test lineage across a defining file and a reading file."""
        self._write(
            tmp_path,
            {"a.sql": "CREATE VIEW v AS SELECT * FROM t", "b.sql": "SELECT * FROM v"},
        )
        with WorkspaceSession(tmp_path, self.config) as session:
            result = session.scan()
            assert result.indexed == 2

            upstream = session.trace_lineage("v", Direction.UPSTREAM)
            assert upstream.names() == ["t"]
            downstream = session.trace_lineage("v", "downstream")
            assert downstream.names() == ["b.sql"]
            assert session.graph.get_node("t").missing_definition

    def test_delete_defining_file(self, tmp_path):
        """Test that deleting the defining file leaves a referenced, undefined view."""
        self._write(
            tmp_path,
            {"a.sql": "CREATE VIEW v AS SELECT * FROM t", "b.sql": "SELECT * FROM v"},
        )
        with WorkspaceSession(tmp_path, self.config) as session:
            session.scan()
            (tmp_path / "a.sql").unlink()
            session.handle_event("a.sql", "deleted")
            session.flush()

            view = session.graph.get_node("v")
            assert view.missing_definition
            assert view.referencing_files == {"b.sql"}
            snapshot = session.get_graph_snapshot()
            assert not any(edge["type"] == "defines" for edge in snapshot["edges"])
            assert snapshot["definitions"] == []

    def test_impact_and_statistics(self, tmp_path):
        """Test impact analysis and statistics through the session."""
        self._write(
            tmp_path,
            {
                "ddl/orders.sql": "CREATE TABLE sales.orders (id INT)",
                "views/v.sql": "CREATE VIEW v AS SELECT * FROM sales.orders",
                "reports/daily.sql": "SELECT * FROM v",
            },
        )
        with WorkspaceSession(tmp_path, self.config) as session:
            session.scan()
            report = session.analyze_impact("sales.orders", ChangeType.DROP)
            assert report.severity == Severity.HIGH
            assert len(report.direct_impacts) == 1
            assert len(report.transitive_impacts) == 1

            stats = session.get_statistics()
            assert stats["tracked_files"] == 3
            assert stats["missing_definitions"] == 0
            assert session.detect_circular_dependencies() == []
            assert [f.path for f in session.file_statuses()] == [
                "ddl/orders.sql",
                "reports/daily.sql",
                "views/v.sql",
            ]

    def test_unparseable_file_still_contributes(self, tmp_path):
        """Test that a file using the fallback still adds edges."""
        self._write(tmp_path, {"a.sql": "SEL * FROM legacy_orders"})
        with WorkspaceSession(tmp_path, self.config) as session:
            session.scan()
            assert session.file_statuses()[0].parse_status == ParseStatus.FALLBACK
            trace = session.trace_lineage("a.sql", Direction.UPSTREAM)
            assert trace.names() == ["legacy_orders"]
            assert len(session.index.warnings.get_by_level("WARNING")) == 1

    def test_custom_functions_from_config(self, tmp_path):
        """Test that configured table-valued functions are not tables."""
        self._write(tmp_path, {"a.sql": "SELECT * FROM my_tvf JOIN orders ON 1 = 1"})
        config = IndexConfig(max_workers=1, custom_table_valued=["my_tvf"])
        with WorkspaceSession(tmp_path, config) as session:
            session.scan()
            assert session.graph.has_node("orders")
            assert not session.graph.has_node("my_tvf")

    def test_sessions_are_independent(self, tmp_path):
        """Test that two sessions share no graph state."""
        self._write(tmp_path / "one", {"a.sql": "SELECT * FROM t1"})
        self._write(tmp_path / "two", {"a.sql": "SELECT * FROM t2"})
        with WorkspaceSession(tmp_path / "one", self.config) as one, WorkspaceSession(
            tmp_path / "two", self.config
        ) as two:
            one.scan()
            two.scan()
            assert one.graph.has_node("t1") and not one.graph.has_node("t2")
            assert two.graph.has_node("t2") and not two.graph.has_node("t1")

    def test_unknown_node(self, tmp_path):
        """Test lineage of a node that does not exist."""
        self._write(tmp_path, {"a.sql": "SELECT * FROM t"})
        with WorkspaceSession(tmp_path, self.config) as session:
            session.scan()
            with pytest.raises(NodeNotFoundError):
                session.trace_lineage("nothing_here")

    def test_closed_session_rejects_events(self, tmp_path):
        """Test that events after close are rejected."""
        session = WorkspaceSession(tmp_path, self.config)
        session.close()
        assert session.index.closed
        with pytest.raises(LineageError):
            session.handle_event("a.sql", "created", content="SELECT 1")
