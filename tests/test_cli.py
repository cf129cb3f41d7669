"""
Tests for CLI functionality (end-to-end).

This module contains tests for the command-line interface, running actual
CLI commands against a temporary workspace and checking their output.
"""

import json
import os
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class TestCLI:
    """Test CLI functionality (end-to-end)."""

    def setup_method(self):
        """Create a small workspace of SQL files."""
        self.workspace = Path(tempfile.mkdtemp(prefix="workspace-lineage-"))
        (self.workspace / "ddl").mkdir()
        (self.workspace / "ddl" / "orders.sql").write_text(
            "CREATE TABLE orders (id INT, amount INT);\n", encoding="utf-8"
        )
        (self.workspace / "v.sql").write_text(
            "CREATE VIEW v AS\nSELECT * FROM orders JOIN customers ON 1 = 1;\n",
            encoding="utf-8",
        )
        (self.workspace / "report.sql").write_text("SELECT * FROM v;\n", encoding="utf-8")
        (self.workspace / "legacy.sql").write_text(
            "SEL * FROM legacy_orders;\n", encoding="utf-8"
        )

    def teardown_method(self):
        """Clean up the workspace."""
        shutil.rmtree(self.workspace, ignore_errors=True)

    def run_cli(self, *args):
        """Run CLI command."""
        # Set UTF-8 encoding for Windows compatibility
        env = dict(os.environ)
        env["PYTHONIOENCODING"] = "utf-8"
        cmd = [sys.executable, "-m", "workspace_lineage.cli"] + list(args)
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",  # Replace invalid characters instead of failing
            cwd=PROJECT_ROOT,
            env=env,
        )
        return result

    def test_summary(self):
        """Test indexing summary."""
        result = self.run_cli(str(self.workspace), "--no-color")

        assert result.returncode == 0
        assert "Indexed 4 of 4 file(s)" in result.stdout
        assert "Indexing Summary" in result.stdout
        assert "Pattern fallback: 1" in result.stdout
        assert "legacy.sql" in result.stdout

    def test_summary_json(self):
        """Test JSON summary output."""
        result = self.run_cli(str(self.workspace), "--format", "json")

        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["scan"]["totalFiles"] == 4
        assert data["statistics"]["view_nodes"] == 1
        assert {f["path"] for f in data["files"]} == {
            "ddl/orders.sql",
            "legacy.sql",
            "report.sql",
            "v.sql",
        }

    def test_trace_upstream(self):
        """Test --trace command."""
        result = self.run_cli(str(self.workspace), "--trace", "v", "--no-color")

        assert result.returncode == 0
        assert "customers" in result.stdout
        assert "orders" in result.stdout
        assert "Found 2 upstream node(s)" in result.stdout

    def test_trace_downstream_json(self):
        """Test --trace with JSON output."""
        result = self.run_cli(
            str(self.workspace),
            "--trace",
            "orders",
            "--direction",
            "downstream",
            "--format",
            "json",
        )

        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["direction"] == "downstream"
        assert [step["node"]["name"] for step in data["steps"]] == ["v", "report.sql"]

    def test_trace_unknown_node(self):
        """Test that tracing an unknown node fails."""
        result = self.run_cli(str(self.workspace), "--trace", "nothing_here", "--no-color")

        assert result.returncode == 1
        assert "nothing_here" in result.stderr

    def test_impact(self):
        """Test --impact command."""
        result = self.run_cli(
            str(self.workspace), "--impact", "orders", "--change-type", "drop", "--no-color"
        )

        assert result.returncode == 0
        assert "Severity: HIGH" in result.stdout
        assert "Direct Impacts" in result.stdout
        assert "Create a rollback plan in case of issues" in result.stdout

    def test_impact_export_markdown(self):
        """Test exporting an impact report to Markdown."""
        output = self.workspace / "impact.md"
        result = self.run_cli(
            str(self.workspace),
            "--impact",
            "orders",
            "--change-type",
            "rename",
            "--export",
            str(output),
            "--no-color",
        )

        assert result.returncode == 0
        content = output.read_text(encoding="utf-8")
        assert content.startswith("# Impact Analysis Report")
        assert "- Change Type: RENAME" in content

    def test_impact_export_json(self):
        """Test exporting an impact report to JSON."""
        output = self.workspace / "impact.json"
        result = self.run_cli(
            str(self.workspace), "--impact", "orders", "--export", str(output), "--no-color"
        )

        assert result.returncode == 0
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["report"]["changeType"] == "modify"
        assert "exportedAt" in payload

    def test_graph_export(self):
        """Test exporting the dependency graph."""
        output = self.workspace / "graph.dot"
        result = self.run_cli(str(self.workspace), "--export", str(output), "--no-color")

        assert result.returncode == 0
        assert output.read_text(encoding="utf-8").startswith("digraph workspace {")

    def test_missing_and_cycles(self):
        """Test --missing and --cycles commands."""
        missing = self.run_cli(str(self.workspace), "--missing", "--format", "json")
        assert missing.returncode == 0
        names = {node["name"] for node in json.loads(missing.stdout)["missing"]}
        assert names == {"customers", "legacy_orders"}

        cycles = self.run_cli(str(self.workspace), "--cycles", "--no-color")
        assert cycles.returncode == 0
        assert "No circular dependencies found" in cycles.stdout

    def test_stats(self):
        """Test --stats command."""
        result = self.run_cli(str(self.workspace), "--stats", "--format", "json")

        assert result.returncode == 0
        stats = json.loads(result.stdout)
        assert stats["tracked_files"] == 4
        assert stats["missing_definitions"] == 2

    def test_warnings_shown(self):
        """Test that fallback warnings are listed and can be suppressed."""
        result = self.run_cli(str(self.workspace), "--no-color")
        assert "Parse failed, used pattern fallback" in result.stdout

        quiet = self.run_cli(str(self.workspace), "--no-color", "--no-warnings")
        assert "Parse failed, used pattern fallback" not in quiet.stdout

    def test_config_file(self):
        """Test loading settings from a config file."""
        config = self.workspace / "config.json"
        config.write_text(json.dumps({"file_patterns": ["report.sql"]}), encoding="utf-8")
        result = self.run_cli(str(self.workspace), "--config", str(config), "--no-color")

        assert result.returncode == 0
        assert "Indexed 1 of 1 file(s)" in result.stdout

    def test_invalid_input(self):
        """Test error handling for bad arguments."""
        missing_dir = self.run_cli(str(self.workspace / "nope"), "--no-color")
        assert missing_dir.returncode == 1
        assert "Workspace directory not found" in missing_dir.stderr

        bad_depth = self.run_cli(str(self.workspace), "--max-depth", "0", "--no-color")
        assert bad_depth.returncode == 1

        bad_config = self.workspace / "bad.json"
        bad_config.write_text("{not json", encoding="utf-8")
        result = self.run_cli(str(self.workspace), "--config", str(bad_config), "--no-color")
        assert result.returncode == 1
        assert "Invalid JSON" in result.stderr

    def test_path(self):
        """Test --path command."""
        result = self.run_cli(
            str(self.workspace), "--path", "orders", "report.sql", "--format", "json"
        )

        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert [[n["name"] for n in p["nodes"]] for p in data["paths"]] == [
            ["orders", "v", "report.sql"]
        ]

        text = self.run_cli(str(self.workspace), "--path", "v", "orders", "--no-color")
        assert text.returncode == 0
        assert "No data-flow path from v to orders" in text.stdout

    def test_roots_and_terminals(self):
        """Test --roots and --terminals commands."""
        roots = self.run_cli(str(self.workspace), "--roots", "--format", "json")
        assert roots.returncode == 0
        assert [n["name"] for n in json.loads(roots.stdout)["roots"]] == [
            "customers",
            "legacy_orders",
            "orders",
        ]

        terminals = self.run_cli(str(self.workspace), "--terminals", "--no-color")
        assert terminals.returncode == 0
        assert "Terminal nodes (2)" in terminals.stdout
        assert "report.sql" in terminals.stdout

    def test_cache(self):
        """Test that a second run with --cache restores files from the cache."""
        first = self.run_cli(
            str(self.workspace), "--cache", ".lineage/index.json", "--format", "json"
        )
        assert first.returncode == 0
        assert (self.workspace / ".lineage" / "index.json").is_file()

        second = self.run_cli(
            str(self.workspace), "--cache", ".lineage/index.json", "--format", "json"
        )
        assert json.loads(second.stdout)["scan"]["cached"] == 4

        cleared = self.run_cli(
            str(self.workspace),
            "--cache",
            ".lineage/index.json",
            "--clear-cache",
            "--format",
            "json",
        )
        assert json.loads(cleared.stdout)["scan"]["cached"] == 0
