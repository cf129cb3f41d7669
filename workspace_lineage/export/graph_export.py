"""
Graph export to files.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from workspace_lineage.graph.dependency_graph import DependencyGraph

GRAPH_FORMATS = {
    ".json": "json",
    ".dot": "dot",
    ".gv": "dot",
    ".mmd": "mermaid",
    ".mermaid": "mermaid",
}


def render_graph(graph: DependencyGraph, fmt: str) -> str:
    """Render the graph as ``json``, ``dot`` or ``mermaid`` text.

    Raises:
        ValueError: For an unknown format.
    """
    if fmt == "json":
        return json.dumps(graph.to_dict(), indent=2)
    if fmt == "dot":
        return graph.to_dot()
    if fmt == "mermaid":
        return graph.to_mermaid()
    raise ValueError(f"Unknown graph export format: {fmt}")


def export_graph(graph: DependencyGraph, path: Union[str, Path]) -> str:
    """Write the graph to a file, choosing the format from its suffix.

    Returns:
        The format written.

    Raises:
        ValueError: If the suffix is not one of .json, .dot, .gv, .mmd or
            .mermaid.
    """
    output = Path(path)
    fmt = GRAPH_FORMATS.get(output.suffix.lower())
    if fmt is None:
        raise ValueError(
            f"Cannot export graph to '{output.name}': "
            f"use one of {', '.join(sorted(GRAPH_FORMATS))}"
        )
    output.write_text(render_graph(graph, fmt) + "\n", encoding="utf-8")
    return fmt
