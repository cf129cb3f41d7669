"""
Tests for impact report and graph export.
"""

import json

import pytest

from workspace_lineage import ChangeType, DependencyGraph, ImpactAnalyzer, ReferenceExtractor
from workspace_lineage.export import (
    build_impact_report_export,
    export_graph,
    generate_impact_report_markdown,
    render_graph,
)


def build_graph(files):
    """Index a mapping of file path to SQL text into a new graph."""
    extractor = ReferenceExtractor()
    graph = DependencyGraph()
    for path, sql in files.items():
        result = extractor.extract(sql, path)
        graph.apply_file_result(path, result.references, result.definitions)
    return graph


class TestImpactExport:
    """Tests for the impact report export record and Markdown rendering."""

    def setup_method(self):
        """Analyze dropping a table read by a view and a query."""
        self.graph = build_graph(
            {
                "a.sql": "CREATE VIEW v AS\nSELECT * FROM orders",
                "b.sql": "SELECT * FROM v",
            }
        )
        self.analyzer = ImpactAnalyzer(self.graph)
        self.report = self.analyzer.analyze("orders", ChangeType.DROP)

    def test_export_record(self):
        """Test the versioned export record."""
        payload = build_impact_report_export(self.report, "1.0.0")
        assert sorted(payload) == ["exportedAt", "report", "version"]
        assert payload["version"] == "1.0.0"
        assert payload["exportedAt"].endswith("Z")
        report = payload["report"]
        assert report["changeType"] == "drop"
        assert report["target"] == {"name": "orders", "type": "table", "found": True}
        assert report["directImpacts"][0]["node"]["name"] == "v"
        assert report["directImpacts"][0]["lineNumber"] == 2
        json.dumps(payload)

    def test_markdown(self):
        """Test the Markdown document."""
        markdown = generate_impact_report_markdown(
            build_impact_report_export(self.report, "1.0.0")
        )
        lines = markdown.splitlines()
        assert lines[0] == "# Impact Analysis Report"
        assert "- Severity: HIGH" in lines
        assert "- Change Type: DROP" in lines
        assert "- Target: table `orders`" in lines
        assert "- Total Affected: 2" in lines
        assert "## Direct Impacts" in lines
        assert "- `v` (view)" in lines
        assert "  - Location: a.sql:2" in lines
        assert "- `b.sql` (file)" in lines
        assert lines.index("## Direct Impacts") < lines.index("## Transitive Impacts")
        assert lines.index("## Transitive Impacts") < lines.index("## Suggestions")

    def test_markdown_for_missing_target(self):
        """Test rendering a report whose target was not found."""
        report = self.analyzer.analyze("nothing_here", ChangeType.RENAME)
        markdown = generate_impact_report_markdown(build_impact_report_export(report, "1.0.0"))
        assert "- Target: unknown `nothing_here`" in markdown
        assert markdown.count("- None") == 2


class TestGraphExport:
    """Tests for graph export files."""

    def setup_method(self):
        """Build a one-view graph."""
        self.graph = build_graph({"a.sql": "CREATE VIEW v AS SELECT * FROM t"})

    def test_render_formats(self):
        """Test each rendering format."""
        assert json.loads(render_graph(self.graph, "json"))["nodes"]
        assert render_graph(self.graph, "dot").startswith("digraph workspace {")
        assert render_graph(self.graph, "mermaid").startswith("flowchart LR")
        with pytest.raises(ValueError):
            render_graph(self.graph, "svg")

    def test_export_by_suffix(self, tmp_path):
        """Test that the file suffix selects the format."""
        assert export_graph(self.graph, tmp_path / "graph.gv") == "dot"
        assert export_graph(self.graph, tmp_path / "graph.mmd") == "mermaid"
        assert export_graph(self.graph, tmp_path / "graph.json") == "json"
        data = json.loads((tmp_path / "graph.json").read_text(encoding="utf-8"))
        assert {node["id"] for node in data["nodes"]} == {"file:a.sql", "t", "v"}
        with pytest.raises(ValueError):
            export_graph(self.graph, tmp_path / "graph.png")
