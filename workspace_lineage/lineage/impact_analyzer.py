"""
Impact analyzer for hypothetical changes.

This module defines the ImpactAnalyzer class, which answers "what breaks,
and how badly, if this object is dropped, renamed, altered or modified?"
by walking the dependency graph downstream from the target.

Severity is looked up per affected node from a fixed table keyed by change
type, whether the impact is direct or transitive, and the node kind. A
consumer that has no definition anywhere in the workspace is escalated one
level, since nothing in the workspace documents what it expects.
"""

from __future__ import annotations

from typing import Optional, Union

from workspace_lineage.graph.dependency_graph import DependencyGraph
from workspace_lineage.lineage.lineage_analyzer import LineageAnalyzer
from workspace_lineage.models.graph import Direction, Node, NodeKind
from workspace_lineage.models.impact import (
    ChangeType,
    ImpactItem,
    ImpactReport,
    ImpactSummary,
    ImpactType,
    Severity,
)
from workspace_lineage.models.lineage_path import LineageStep

DEFAULT_IMPACT_DEPTH = 10

_S = Severity

SEVERITY_TABLE: dict[ChangeType, dict[ImpactType, dict[NodeKind, Severity]]] = {
    ChangeType.DROP: {
        ImpactType.DIRECT: {NodeKind.TABLE: _S.HIGH, NodeKind.VIEW: _S.HIGH, NodeKind.FILE: _S.HIGH},
        ImpactType.TRANSITIVE: {
            NodeKind.TABLE: _S.MEDIUM,
            NodeKind.VIEW: _S.MEDIUM,
            NodeKind.FILE: _S.MEDIUM,
        },
    },
    ChangeType.RENAME: {
        ImpactType.DIRECT: {NodeKind.TABLE: _S.HIGH, NodeKind.VIEW: _S.HIGH, NodeKind.FILE: _S.HIGH},
        ImpactType.TRANSITIVE: {NodeKind.TABLE: _S.LOW, NodeKind.VIEW: _S.LOW, NodeKind.FILE: _S.LOW},
    },
    ChangeType.ALTER: {
        ImpactType.DIRECT: {
            NodeKind.TABLE: _S.MEDIUM,
            NodeKind.VIEW: _S.MEDIUM,
            NodeKind.FILE: _S.MEDIUM,
        },
        ImpactType.TRANSITIVE: {NodeKind.TABLE: _S.LOW, NodeKind.VIEW: _S.MEDIUM, NodeKind.FILE: _S.LOW},
    },
    ChangeType.MODIFY: {
        ImpactType.DIRECT: {NodeKind.TABLE: _S.MEDIUM, NodeKind.VIEW: _S.MEDIUM, NodeKind.FILE: _S.LOW},
        ImpactType.TRANSITIVE: {NodeKind.TABLE: _S.LOW, NodeKind.VIEW: _S.LOW, NodeKind.FILE: _S.LOW},
    },
}


class ImpactAnalyzer:
    """Computes impact reports for hypothetical changes.

    Usage:
        analyzer = ImpactAnalyzer(graph)
        report = analyzer.analyze("orders", ChangeType.DROP)
        print(report.severity, len(report.direct_impacts))
    """

    def __init__(
        self,
        graph: DependencyGraph,
        max_depth: int = DEFAULT_IMPACT_DEPTH,
        lineage: Optional[LineageAnalyzer] = None,
    ) -> None:
        """Initialize an ImpactAnalyzer.

        Args:
            graph: Dependency graph to analyze.
            max_depth: Deepest transitive impact considered.
            lineage: Lineage analyzer to reuse; one is created if omitted.
        """
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.graph = graph
        self.max_depth = max_depth
        self.lineage = lineage or LineageAnalyzer(graph)

    def analyze(self, target: str, change_type: Union[ChangeType, str]) -> ImpactReport:
        """Analyze the impact of changing one object.

        Args:
            target: Object name, node id or file path.
            change_type: ``drop``, ``rename``, ``alter`` or ``modify``.

        Returns:
            ImpactReport. When the target is not in the graph the report
            has ``found=False``, severity ``none`` and a single suggestion.

        Raises:
            ValueError: For an unknown change type.

        Example:
            >>> report = analyzer.analyze("orders", "drop")
            >>> report.severity
            <Severity.HIGH: 'high'>
        """
        change_type = ChangeType(change_type)
        node = self.graph.get_node(target) or self.graph.find_node(target)
        if node is None:
            return ImpactReport(
                target=target,
                change_type=change_type,
                found=False,
                suggestions=[f"'{target}' was not found in the workspace dependency graph"],
            )

        steps = self.lineage.trace(node.id, Direction.DOWNSTREAM, self.max_depth)

        direct: list[ImpactItem] = []
        transitive: list[ImpactItem] = []
        for step in steps:
            item = self._impact_item(node, step, change_type)
            if item.impact_type == ImpactType.DIRECT:
                direct.append(item)
            else:
                transitive.append(item)

        report = ImpactReport(
            target=target,
            change_type=change_type,
            direct_impacts=direct,
            transitive_impacts=transitive,
            target_node=node,
        )
        report.severity = max(
            (item.severity for item in report.all_impacts), default=Severity.NONE
        )
        report.summary = self._summarize(report.all_impacts)
        report.suggestions = self._suggestions(node, report)
        return report

    def _impact_item(self, target: Node, step: LineageStep, change_type: ChangeType) -> ImpactItem:
        impact_type = ImpactType.DIRECT if step.depth == 1 else ImpactType.TRANSITIVE
        severity = self.severity_for(change_type, impact_type, step.node)

        if impact_type == ImpactType.DIRECT:
            reason = f"Reads {_describe(target)} directly"
        else:
            via = self.graph.get_node(step.via_edge.target)
            via_name = via.name if via else step.via_edge.target
            reason = f"Depends on '{target.name}' through '{via_name}' ({step.depth} hops)"
        if step.node.missing_definition:
            reason += "; no definition found in the workspace"

        return ImpactItem(
            node=step.node,
            impact_type=impact_type,
            depth=step.depth,
            severity=severity,
            reason=reason,
            file_path=step.via_edge.file_path,
            line=step.via_edge.line,
        )

    @staticmethod
    def severity_for(change_type: ChangeType, impact_type: ImpactType, node: Node) -> Severity:
        """Severity of one affected node.

        Example:
            >>> ImpactAnalyzer.severity_for(ChangeType.DROP, ImpactType.DIRECT, view_node)
            <Severity.HIGH: 'high'>
        """
        severity = SEVERITY_TABLE[change_type][impact_type][node.kind]
        if node.missing_definition:
            severity = severity.escalate()
        return severity

    @staticmethod
    def _summarize(items: list[ImpactItem]) -> ImpactSummary:
        return ImpactSummary(
            total_affected=len(items),
            tables_affected=sum(1 for i in items if i.node.kind == NodeKind.TABLE),
            views_affected=sum(1 for i in items if i.node.kind == NodeKind.VIEW),
            queries_affected=sum(1 for i in items if i.node.kind == NodeKind.FILE),
            files_affected=len({i.file_path for i in items}),
        )

    def _suggestions(self, target: Node, report: ImpactReport) -> list[str]:
        suggestions: list[str] = []
        kind = target.kind.value
        total = report.summary.total_affected

        if report.change_type == ChangeType.DROP:
            suggestions.append(
                f"Consider marking {kind} '{target.name}' as deprecated instead of dropping immediately"
            )
            audience = "users" if report.severity == Severity.CRITICAL else "affected teams"
            suggestions.append(f"Notify all {audience} about this change")
        elif report.change_type == ChangeType.RENAME:
            if total:
                suggestions.append(f"Update {total} downstream references to '{target.name}'")
            suggestions.append("Consider creating a synonym or alias for backward compatibility")
        elif report.change_type == ChangeType.ALTER:
            if total:
                suggestions.append(
                    f"Verify that the {total} downstream consumers of '{target.name}' "
                    "still match its new structure"
                )
        elif total:
            suggestions.append(
                f"Validate the outputs of the {total} downstream consumers of '{target.name}'"
            )

        for cycle in self.graph.detect_circular_dependencies():
            if target.id in cycle:
                path = " -> ".join(cycle + [cycle[0]])
                suggestions.append(
                    f"'{target.name}' is part of a circular dependency ({path}); "
                    "review the cycle before changing it"
                )
                break

        missing = sorted(
            {item.node.name for item in report.all_impacts if item.node.missing_definition}
        )
        if missing:
            suggestions.append(
                f"{len(missing)} affected object(s) have no definition in the workspace "
                f"({', '.join(missing)}); their impact may be underestimated"
            )

        if report.severity >= Severity.HIGH:
            suggestions.append("High impact: Schedule this change during a maintenance window")
            suggestions.append("Create a rollback plan in case of issues")

        if not total:
            suggestions.append(f"No downstream dependencies found for '{target.name}'")

        return suggestions


def _describe(node: Node) -> str:
    if node.kind == NodeKind.FILE:
        return f"file '{node.name}'"
    return f"{node.kind.value} '{node.name}'"
