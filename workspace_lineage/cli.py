"""
Command-line interface for workspace lineage.

This module provides a command-line interface that indexes a directory of
SQL files and answers lineage, impact, cycle and missing-definition queries
against the resulting dependency graph.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from colorama import Fore, Style, init
from tabulate import tabulate

from workspace_lineage import IndexConfig, WorkspaceSession, __version__
from workspace_lineage.dialects.function_registry import supported_dialects
from workspace_lineage.exceptions import LineageError
from workspace_lineage.export.graph_export import GRAPH_FORMATS, export_graph
from workspace_lineage.export.impact_export import (
    build_impact_report_export,
    generate_impact_report_markdown,
)
from workspace_lineage.index.index_manager import ScanResult
from workspace_lineage.models.graph import Direction
from workspace_lineage.models.impact import ChangeType, ImpactItem, ImpactReport, Severity

init(autoreset=True)

USE_COLOR = True
QUIET = False

_SEVERITY_COLORS = {
    Severity.NONE: Fore.WHITE,
    Severity.LOW: Fore.GREEN,
    Severity.MEDIUM: Fore.YELLOW,
    Severity.HIGH: Fore.RED,
    Severity.CRITICAL: Fore.MAGENTA,
}


def _paint(text: str, color: str) -> str:
    if not USE_COLOR:
        return text
    return f"{color}{text}{Style.RESET_ALL}"


def print_success(msg: str) -> None:
    """Print success message."""
    if QUIET:
        return
    try:
        if USE_COLOR:
            print(f"{Fore.GREEN}✓ {msg}{Style.RESET_ALL}")
        else:
            print(f"[OK] {msg}")
    except UnicodeEncodeError:
        print(_paint(f"[OK] {msg}", Fore.GREEN))


def print_error(msg: str) -> None:
    """Print error message."""
    try:
        if USE_COLOR:
            print(f"{Fore.RED}✗ {msg}{Style.RESET_ALL}", file=sys.stderr)
        else:
            print(f"[ERROR] {msg}", file=sys.stderr)
    except UnicodeEncodeError:
        print(_paint(f"[ERROR] {msg}", Fore.RED), file=sys.stderr)


def print_warning(msg: str) -> None:
    """Print warning message."""
    if QUIET:
        return
    try:
        if USE_COLOR:
            print(f"{Fore.YELLOW}⚠ {msg}{Style.RESET_ALL}")
        else:
            print(f"[WARN] {msg}")
    except UnicodeEncodeError:
        print(_paint(f"[WARN] {msg}", Fore.YELLOW))


def print_info(msg: str) -> None:
    """Print info message."""
    if QUIET:
        return
    print(_paint(msg, Fore.CYAN))


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workspace-lineage",
        description=f"SQL Workspace Dependency Indexer - v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Index a workspace and show a summary
  %(prog)s warehouse/

  # What does a view read?
  %(prog)s warehouse/ --trace daily_revenue --direction upstream

  # How does data get from a table to a report?
  %(prog)s warehouse/ --path orders reports/daily.sql

  # What breaks if a table is dropped?
  %(prog)s warehouse/ --impact orders --change-type drop

  # Export the impact report as Markdown
  %(prog)s warehouse/ --impact orders --change-type drop --export impact.md

  # Export the dependency graph for Graphviz
  %(prog)s warehouse/ --export graph.dot
        """,
    )

    # === Input parameters ===
    input_group = parser.add_argument_group("Input Options")
    input_group.add_argument("workspace", help="Workspace directory containing SQL files")
    input_group.add_argument("--config", "-c", metavar="FILE", help="Configuration file (JSON)")
    input_group.add_argument(
        "--dialect",
        "-d",
        help=f"SQL dialect (one of: {', '.join(supported_dialects())})",
    )

    # === Query parameters ===
    query_group = parser.add_argument_group("Query Options")
    query_group.add_argument(
        "--trace", "-t", metavar="NAME", help="Trace the lineage of a table, view or file"
    )
    query_group.add_argument(
        "--direction",
        choices=Direction.values(),
        default=Direction.UPSTREAM.value,
        help="Trace direction (default: upstream)",
    )
    query_group.add_argument(
        "--impact", "-i", metavar="NAME", help="Analyze the impact of changing an object"
    )
    query_group.add_argument(
        "--change-type",
        choices=ChangeType.values(),
        default=ChangeType.MODIFY.value,
        help="Change analyzed by --impact (default: modify)",
    )
    query_group.add_argument(
        "--cycles", action="store_true", help="List circular dependencies"
    )
    query_group.add_argument(
        "--missing", action="store_true", help="List referenced objects with no definition"
    )
    query_group.add_argument(
        "--path",
        nargs=2,
        metavar=("SOURCE", "TARGET"),
        help="Show the data-flow paths from SOURCE to TARGET",
    )
    query_group.add_argument(
        "--roots", action="store_true", help="List root sources (objects that read nothing)"
    )
    query_group.add_argument(
        "--terminals", action="store_true", help="List terminal nodes (nodes nothing reads)"
    )
    query_group.add_argument("--stats", action="store_true", help="Show graph statistics")

    # === Output parameters ===
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--format",
        "-f",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    output_group.add_argument(
        "--export",
        "-o",
        metavar="FILE",
        help="Export the impact report (.json, .md) or the graph "
        f"({', '.join(sorted(GRAPH_FORMATS))})",
    )
    output_group.add_argument("--no-color", action="store_true", help="Disable colored output")
    output_group.add_argument("--no-warnings", action="store_true", help="Suppress warnings")

    # === Configuration parameters ===
    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument("--max-depth", type=int, help="Maximum trace or impact depth")
    config_group.add_argument(
        "--cache",
        metavar="FILE",
        help="Persist extraction results to FILE and reuse them on the next run",
    )
    config_group.add_argument(
        "--clear-cache", action="store_true", help="Discard the index cache before scanning"
    )
    config_group.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """
    CLI main entry point.

    Supported commands:
        # Index and summarize
        workspace-lineage warehouse/

        # Lineage
        workspace-lineage warehouse/ --trace v --direction downstream

        # Impact analysis
        workspace-lineage warehouse/ --impact orders --change-type drop

        # Data-flow paths and endpoints
        workspace-lineage warehouse/ --path orders daily_revenue
        workspace-lineage warehouse/ --roots

        # Cycles, missing definitions, statistics
        workspace-lineage warehouse/ --cycles
        workspace-lineage warehouse/ --missing
        workspace-lineage warehouse/ --stats --format json
    """
    args = build_parser().parse_args(argv)

    global USE_COLOR, QUIET
    if args.no_color:
        USE_COLOR = False
    QUIET = args.format == "json"

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        # 1. Check the workspace
        workspace = Path(args.workspace)
        if not workspace.is_dir():
            print_error(f"Workspace directory not found: {args.workspace}")
            sys.exit(1)

        # 2. Configure
        config = IndexConfig.from_file(args.config) if args.config else IndexConfig()
        config = config.merged(
            dialect=args.dialect,
            cache_path=args.cache,
            clear_cache_on_startup=True if args.clear_cache else None,
        )
        if args.max_depth is not None:
            if args.max_depth < 1:
                print_error(f"--max-depth must be at least 1, got {args.max_depth}")
                sys.exit(1)
            config = config.merged(
                lineage_max_depth=args.max_depth, impact_max_depth=args.max_depth
            )

        # 3. Index
        print_info(f"Indexing SQL files in: {workspace} (dialect: {config.dialect})")
        with WorkspaceSession(workspace, config) as session:
            scan = session.scan()
            cached = f", {scan.cached} from cache" if scan.cached else ""
            print_success(
                f"Indexed {scan.indexed} of {scan.total_files} file(s){cached} "
                f"in {scan.duration_seconds:.2f}s"
            )

            # 4. Handle query commands
            report = None
            if args.trace:
                handle_trace(session, args.trace, args.direction, args.max_depth, args.format)
            elif args.impact:
                report = handle_impact(session, args.impact, args.change_type, args.format)
            elif args.cycles:
                handle_cycles(session, args.format)
            elif args.missing:
                handle_missing(session, args.format)
            elif args.path:
                handle_path(session, args.path[0], args.path[1], args.max_depth, args.format)
            elif args.roots:
                handle_endpoints(session, "roots", args.format)
            elif args.terminals:
                handle_endpoints(session, "terminals", args.format)
            elif args.stats:
                handle_stats(session, args.format)
            else:
                handle_summary(session, scan, args.format)

            # 5. Export (if needed)
            if args.export:
                handle_export(session, args.export, report)

            # 6. Show warnings (if any)
            if not args.no_warnings:
                show_warnings(session)

    except LineageError as e:
        print_error(f"Workspace analysis failed: {e.message}")
        sys.exit(1)
    except (TypeError, ValueError) as e:
        print_error(f"Invalid input: {e}")
        sys.exit(1)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)


def handle_trace(
    session: WorkspaceSession,
    name: str,
    direction: str,
    max_depth: Optional[int],
    format: str,
) -> None:
    """Handle --trace command."""
    trace = session.trace_lineage(name, direction, max_depth)
    if format == "json":
        print_json(trace.to_dict())
        return

    arrow = "reads" if trace.direction == Direction.UPSTREAM else "is read by"
    print_info(f"\n{trace.root.name} ({trace.root.kind.value}) {arrow}:\n")
    if not trace.steps:
        print_warning(f"No {direction} lineage found for {trace.root.name}")
        return

    rows = [
        [
            step.depth,
            step.node.name,
            step.node.kind.value,
            f"{step.via_edge.file_path}:{step.via_edge.line}",
            "yes" if step.node.missing_definition else "",
        ]
        for step in trace.steps
    ]
    print(tabulate(rows, headers=["Depth", "Name", "Kind", "Location", "Missing"]))
    print()
    print_success(f"Found {len(trace.steps)} {direction} node(s)")


def handle_path(
    session: WorkspaceSession,
    source: str,
    target: str,
    max_depth: Optional[int],
    format: str,
) -> None:
    """Handle --path command."""
    paths = session.find_paths(source, target, max_depth)
    if format == "json":
        print_json({"source": source, "target": target, "paths": [p.to_dict() for p in paths]})
        return

    if not paths:
        print_warning(f"No data-flow path from {source} to {target}")
        return
    print_info(f"\nData-flow paths from {source} to {target}:\n")
    for i, path in enumerate(paths, 1):
        print(f"  {i}. {' -> '.join(path.names())} ({path.depth} hop(s))")
    print()
    print_success(f"Found {len(paths)} path(s)")


def handle_endpoints(session: WorkspaceSession, which: str, format: str) -> None:
    """Handle --roots and --terminals commands."""
    if which == "roots":
        nodes = session.find_root_sources()
        title = "Root sources"
    else:
        nodes = session.find_terminal_nodes()
        title = "Terminal nodes"
    if format == "json":
        print_json({which: [node.to_dict() for node in nodes]})
        return

    if not nodes:
        print_warning(f"No {title.lower()} found")
        return
    print_info(f"\n{title} ({len(nodes)}):\n")
    rows = [
        [node.name, node.kind.value, "yes" if node.missing_definition else ""]
        for node in nodes
    ]
    print(tabulate(rows, headers=["Name", "Kind", "Missing"]))


def handle_impact(
    session: WorkspaceSession, name: str, change_type: str, format: str
) -> ImpactReport:
    """Handle --impact command."""
    report = session.analyze_impact(name, change_type)
    if format == "json":
        print_json(report.to_dict())
        return report

    if not report.found:
        print_warning(f"'{name}' was not found in the workspace")
        for suggestion in report.suggestions:
            print(f"  - {suggestion}")
        return report

    color = _SEVERITY_COLORS[report.severity]
    print_info(f"\nImpact of {change_type.upper()} on {name}:\n")
    print(f"Severity: {_paint(report.severity.value.upper(), color)}")
    summary = report.summary
    print(
        f"Affected: {summary.total_affected} "
        f"(tables: {summary.tables_affected}, views: {summary.views_affected}, "
        f"queries: {summary.queries_affected}, files: {summary.files_affected})"
    )

    for title, items in (
        ("Direct Impacts", report.direct_impacts),
        ("Transitive Impacts", report.transitive_impacts),
    ):
        print(f"\n{title}:")
        if not items:
            print("  None")
            continue
        print(tabulate(_impact_rows(items), headers=["Name", "Kind", "Depth", "Severity", "Location"]))

    if report.suggestions:
        print("\nSuggestions:")
        for suggestion in report.suggestions:
            print(f"  - {suggestion}")
    print()
    return report


def _impact_rows(items: list[ImpactItem]) -> list[list[Any]]:
    return [
        [
            item.node.name,
            item.node.kind.value,
            item.depth,
            _paint(item.severity.value, _SEVERITY_COLORS[item.severity]),
            f"{item.file_path}:{item.line}",
        ]
        for item in items
    ]


def handle_cycles(session: WorkspaceSession, format: str) -> None:
    """Handle --cycles command."""
    cycles = session.detect_circular_dependencies()
    if format == "json":
        print_json({"cycles": cycles})
        return

    if not cycles:
        print_success("No circular dependencies found")
        return
    print_warning(f"Found {len(cycles)} circular dependenc{'y' if len(cycles) == 1 else 'ies'}:")
    for i, cycle in enumerate(cycles, 1):
        print(f"  {i}. {' -> '.join(cycle + [cycle[0]])}")


def handle_missing(session: WorkspaceSession, format: str) -> None:
    """Handle --missing command."""
    missing = session.graph.missing_definitions()
    if format == "json":
        print_json({"missing": [node.to_dict() for node in missing]})
        return

    if not missing:
        print_success("Every referenced object has a definition")
        return
    print_info(f"\nReferenced objects with no definition ({len(missing)}):\n")
    rows = [[node.name, ", ".join(sorted(node.referencing_files))] for node in missing]
    print(tabulate(rows, headers=["Name", "Referenced In"]))


def handle_stats(session: WorkspaceSession, format: str) -> None:
    """Handle --stats command."""
    stats = session.get_statistics()
    if format == "json":
        print_json(stats)
        return
    print_info("\nGraph Statistics:\n")
    print(tabulate(sorted(stats.items()), headers=["Metric", "Value"]))


def handle_summary(session: WorkspaceSession, scan: ScanResult, format: str) -> None:
    """Show indexing summary."""
    statuses = session.file_statuses()
    if format == "json":
        print_json(
            {
                "scan": scan.to_dict(),
                "statistics": session.get_statistics(),
                "files": [status.to_dict() for status in statuses],
            }
        )
        return

    print_info("\n" + "=" * 60)
    print_info("Indexing Summary")
    print_info("=" * 60 + "\n")

    stats = session.get_statistics()
    print(f"Files: {scan.total_files}")
    print(f"  Parsed: {scan.indexed - scan.fallback}")
    print(f"  Pattern fallback: {scan.fallback}")
    print(f"  Failed: {scan.failed}")
    print()
    print(f"Objects: {stats['table_nodes'] + stats['view_nodes']}")
    print(f"  Tables: {stats['table_nodes']}")
    print(f"  Views: {stats['view_nodes']}")
    print(f"  Missing definitions: {stats['missing_definitions']}")
    print(f"  Circular dependencies: {stats['circular_dependencies']}")
    print()

    if statuses:
        rows = [
            [
                status.path,
                status.parse_status.value,
                status.reference_count,
                status.definition_count,
            ]
            for status in statuses
        ]
        print(tabulate(rows, headers=["File", "Status", "References", "Definitions"]))


def handle_export(
    session: WorkspaceSession, output_file: str, report: Optional[ImpactReport]
) -> None:
    """Export the impact report or the dependency graph."""
    output_path = Path(output_file)
    print_info(f"\nExporting to: {output_path}")

    if report is not None:
        payload = build_impact_report_export(report, __version__)
        suffix = output_path.suffix.lower()
        if suffix == ".md":
            output_path.write_text(generate_impact_report_markdown(payload), encoding="utf-8")
        elif suffix == ".json":
            output_path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8"
            )
        else:
            raise ValueError(
                f"Cannot export an impact report to '{output_path.name}': use .json or .md"
            )
    else:
        export_graph(session.graph, output_path)

    print_success(f"Exported to {output_path}")


def show_warnings(session: WorkspaceSession) -> None:
    """Show indexing warnings."""
    warnings = session.index.warnings.get_all()
    if warnings:
        print_warning(f"\n{len(warnings)} warning(s):")
        for i, warning in enumerate(warnings, 1):
            location = f"{warning.file_path}: " if warning.file_path else ""
            if not QUIET:
                print(f"  {i}. [{warning.level}] {location}{warning.message}")


if __name__ == "__main__":
    main()
