"""
Impact report export.

Builds the versioned JSON record of an impact report and renders it as
Markdown.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from workspace_lineage.models.impact import ImpactReport


def build_impact_report_export(report: ImpactReport, version: str) -> dict[str, Any]:
    """Build the export record for an impact report.

    Args:
        report: The report to export.
        version: Version string of the exporting tool.

    Returns:
        ``{"version", "exportedAt", "report"}`` where ``report`` holds
        changeType, target, severity, summary, directImpacts,
        transitiveImpacts and suggestions.

    Example:
        >>> payload = build_impact_report_export(report, "1.0.0")
        >>> sorted(payload)
        ['exportedAt', 'report', 'version']
    """
    return {
        "version": version,
        "exportedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "report": report.to_dict(),
    }


def generate_impact_report_markdown(payload: dict[str, Any]) -> str:
    """Render an export record as a Markdown document."""
    report = payload["report"]
    target = report["target"]
    summary = report["summary"]
    lines: list[str] = []

    lines.append("# Impact Analysis Report")
    lines.append("")
    lines.append(f"- Exported: {payload['exportedAt']}")
    lines.append(f"- Severity: {report['severity'].upper()}")
    lines.append(f"- Change Type: {report['changeType'].upper()}")
    lines.append(f"- Target: {target.get('type') or 'unknown'} `{target['name']}`")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- Total Affected: {summary['totalAffected']}")
    lines.append(f"- Tables Affected: {summary['tablesAffected']}")
    lines.append(f"- Views Affected: {summary['viewsAffected']}")
    lines.append(f"- Queries Affected: {summary['queriesAffected']}")
    lines.append(f"- Files Affected: {summary['filesAffected']}")
    lines.append("")

    _append_impact_section(lines, "Direct Impacts", report["directImpacts"])
    _append_impact_section(lines, "Transitive Impacts", report["transitiveImpacts"])

    lines.append("## Suggestions")
    lines.append("")
    if not report["suggestions"]:
        lines.append("- None")
    for suggestion in report["suggestions"]:
        lines.append(f"- {suggestion}")
    lines.append("")

    return "\n".join(lines)


def _append_impact_section(lines: list[str], title: str, items: list[dict[str, Any]]) -> None:
    lines.append(f"## {title}")
    lines.append("")
    if not items:
        lines.append("- None")
        lines.append("")
        return

    for item in items:
        node = item["node"]
        line_number = item.get("lineNumber") or 0
        location = f"{item['filePath']}:{line_number}" if line_number > 0 else item["filePath"]
        lines.append(f"- `{node['name']}` ({node['kind']})")
        lines.append(f"  - Severity: {item['severity']}")
        lines.append(f"  - Reason: {item['reason']}")
        lines.append(f"  - Location: {location}")
    lines.append("")
