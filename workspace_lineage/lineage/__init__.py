"""
Lineage and impact analysis.

Read-only analyzers over the dependency graph: breadth-first lineage
tracing and change impact reports.
"""

from workspace_lineage.lineage.impact_analyzer import SEVERITY_TABLE, ImpactAnalyzer
from workspace_lineage.lineage.lineage_analyzer import LineageAnalyzer

__all__ = [
    "ImpactAnalyzer",
    "LineageAnalyzer",
    "SEVERITY_TABLE",
]
