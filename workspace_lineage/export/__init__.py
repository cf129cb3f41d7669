"""
Export of impact reports and dependency graphs.
"""

from workspace_lineage.export.graph_export import GRAPH_FORMATS, export_graph, render_graph
from workspace_lineage.export.impact_export import (
    build_impact_report_export,
    generate_impact_report_markdown,
)

__all__ = [
    "GRAPH_FORMATS",
    "build_impact_report_export",
    "export_graph",
    "generate_impact_report_markdown",
    "render_graph",
]
