"""
Tests for ImpactAnalyzer.
"""

import pytest

from workspace_lineage import (
    ChangeType,
    DependencyGraph,
    ImpactAnalyzer,
    NodeKind,
    ReferenceExtractor,
    Severity,
)
from workspace_lineage.lineage.impact_analyzer import SEVERITY_TABLE
from workspace_lineage.models.graph import Node
from workspace_lineage.models.impact import ImpactType


def build_graph(files):
    """Index a mapping of file path to SQL text into a new graph."""
    extractor = ReferenceExtractor()
    graph = DependencyGraph()
    for path, sql in files.items():
        result = extractor.extract(sql, path)
        graph.apply_file_result(path, result.references, result.definitions)
    return graph


WORKSPACE = {
    "schema.sql": "CREATE TABLE orders (id INT, qty INT)",
    "a.sql": "CREATE VIEW v AS SELECT * FROM orders",
    "b.sql": "SELECT * FROM v",
}


class TestAnalyze:
    """Tests for impact reports."""

    def setup_method(self):
        """Build a table, a view over it and a query over the view."""
        self.graph = build_graph(WORKSPACE)
        self.analyzer = ImpactAnalyzer(self.graph)

    def test_drop_table(self):
        """Test dropping a table read by a view that a query reads."""
        report = self.analyzer.analyze("orders", ChangeType.DROP)
        assert report.found
        assert report.severity == Severity.HIGH
        assert [i.node.name for i in report.direct_impacts] == ["v"]
        assert [i.node.name for i in report.transitive_impacts] == ["b.sql"]

        direct = report.direct_impacts[0]
        assert direct.impact_type == ImpactType.DIRECT
        assert direct.severity == Severity.HIGH
        assert direct.file_path == "a.sql"
        assert direct.line == 1
        assert direct.reason == "Reads table 'orders' directly"

        transitive = report.transitive_impacts[0]
        assert transitive.depth == 2
        assert transitive.severity == Severity.MEDIUM
        assert transitive.reason == "Depends on 'orders' through 'v' (2 hops)"

    def test_summary(self):
        """Test the aggregated counts."""
        report = self.analyzer.analyze("orders", "drop")
        assert report.summary.total_affected == 2
        assert report.summary.views_affected == 1
        assert report.summary.queries_affected == 1
        assert report.summary.tables_affected == 0
        assert report.summary.files_affected == 2

    def test_drop_suggestions(self):
        """Test suggestions for a high-impact drop."""
        report = self.analyzer.analyze("orders", "drop")
        assert report.suggestions[0] == (
            "Consider marking table 'orders' as deprecated instead of dropping immediately"
        )
        assert "Notify all affected teams about this change" in report.suggestions
        assert "Create a rollback plan in case of issues" in report.suggestions

    def test_rename_suggestions(self):
        """Test suggestions for a rename."""
        report = self.analyzer.analyze("orders", ChangeType.RENAME)
        assert "Update 2 downstream references to 'orders'" in report.suggestions
        assert (
            "Consider creating a synonym or alias for backward compatibility"
            in report.suggestions
        )

    def test_modify_is_lower_than_drop(self):
        """Test that change types are graded."""
        modify = self.analyzer.analyze("orders", ChangeType.MODIFY)
        drop = self.analyzer.analyze("orders", ChangeType.DROP)
        assert modify.severity == Severity.MEDIUM
        assert modify.severity < drop.severity

    def test_no_consumers(self):
        """Test a target nothing reads."""
        report = self.analyzer.analyze("b.sql", ChangeType.DROP)
        assert report.found
        assert report.severity == Severity.NONE
        assert report.all_impacts == []
        assert "No downstream dependencies found for 'b.sql'" in report.suggestions

    def test_target_not_found(self):
        """Test a target that is not in the graph."""
        report = self.analyzer.analyze("nothing_here", "alter")
        assert not report.found
        assert report.severity == Severity.NONE
        assert report.target_node is None
        assert report.suggestions == [
            "'nothing_here' was not found in the workspace dependency graph"
        ]
        assert report.to_dict()["target"] == {
            "name": "nothing_here",
            "type": None,
            "found": False,
        }

    def test_drop_table_read_by_qualified_name(self):
        """Test that a consumer reading 'sales.orders' is impacted by dropping 'orders'."""
        graph = build_graph(
            {
                "a.sql": "CREATE TABLE orders (id INT)",
                "b.sql": "CREATE VIEW v AS SELECT * FROM sales.orders",
            }
        )
        report = ImpactAnalyzer(graph).analyze("orders", "drop")
        assert [i.node.name for i in report.direct_impacts] == ["v"]
        assert report.direct_impacts[0].file_path == "b.sql"
        assert report.severity == Severity.HIGH

        qualified = ImpactAnalyzer(graph).analyze("sales.orders", "drop")
        assert [i.node.name for i in qualified.direct_impacts] == ["v"]

    def test_unknown_change_type(self):
        """Test that an unknown change type is rejected."""
        with pytest.raises(ValueError):
            self.analyzer.analyze("orders", "truncate")

    def test_max_depth(self):
        """Test that transitive impacts stop at the depth limit."""
        analyzer = ImpactAnalyzer(self.graph, max_depth=1)
        report = analyzer.analyze("orders", "drop")
        assert [i.node.name for i in report.direct_impacts] == ["v"]
        assert report.transitive_impacts == []
        with pytest.raises(ValueError):
            ImpactAnalyzer(self.graph, max_depth=0)


class TestSeverity:
    """Tests for the severity rules."""

    def test_table_covers_every_combination(self):
        """Test that every change, impact type and kind has a severity."""
        for change in ChangeType:
            for impact_type in ImpactType:
                for kind in NodeKind:
                    assert isinstance(SEVERITY_TABLE[change][impact_type][kind], Severity)

    def test_missing_definition_escalates(self):
        """Test that undefined consumers are escalated one level."""
        defined = Node("v", "v", NodeKind.VIEW)
        undefined = Node("w", "w", NodeKind.TABLE, missing_definition=True)
        assert ImpactAnalyzer.severity_for(
            ChangeType.MODIFY, ImpactType.DIRECT, defined
        ) == Severity.MEDIUM
        assert ImpactAnalyzer.severity_for(
            ChangeType.MODIFY, ImpactType.DIRECT, undefined
        ) == Severity.HIGH
        assert ImpactAnalyzer.severity_for(
            ChangeType.DROP, ImpactType.DIRECT, undefined
        ) == Severity.CRITICAL

    def test_adding_a_consumer_never_lowers_severity(self):
        """Test severity monotonicity when a dependency is added."""
        before = ImpactAnalyzer(build_graph(WORKSPACE)).analyze("orders", "drop")

        files = dict(WORKSPACE)
        files["load.sql"] = "INSERT INTO staging_orders SELECT * FROM orders"
        after = ImpactAnalyzer(build_graph(files)).analyze("orders", "drop")

        assert after.severity >= before.severity
        assert after.severity == Severity.CRITICAL
        assert after.summary.total_affected == before.summary.total_affected + 2
        staging = next(i for i in after.direct_impacts if i.node.name == "staging_orders")
        assert staging.node.missing_definition
        assert staging.reason.endswith("; no definition found in the workspace")
        assert any("no definition in the workspace" in s for s in after.suggestions)
        assert "Notify all users about this change" in after.suggestions

    def test_circular_dependency_suggestion(self):
        """Test that a target on a cycle gets a warning."""
        graph = build_graph(
            {
                "x.sql": "CREATE VIEW c1 AS SELECT * FROM c2",
                "y.sql": "CREATE VIEW c2 AS SELECT * FROM c1",
            }
        )
        report = ImpactAnalyzer(graph).analyze("c1", "alter")
        assert any(
            "circular dependency (c1 -> c2 -> c1)" in s for s in report.suggestions
        )
