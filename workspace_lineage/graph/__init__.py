"""
Dependency graph module.
"""

from workspace_lineage.graph.dependency_graph import DependencyGraph

__all__ = ["DependencyGraph"]
