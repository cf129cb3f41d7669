"""Version information."""

__version__ = "1.0.0"
__version_info__ = (1, 0, 0)

# Version history
CHANGELOG = """
# Changelog

## v1.0.0

**Workspace indexing**

- Full workspace scan with a bounded worker pool
- Debounced update queue for created/modified/deleted/renamed files
- Content-hash skip for unchanged files

**Extraction**

- sqlglot-based statement model with regex fallback
- Per-file CTE suppression
- Dialect function registry (aggregate, window, table-valued)

**Analysis**

- Upstream/downstream lineage tracing
- Impact analysis with severity ranking and suggestions
- Circular dependency detection
- JSON, Markdown, DOT and Mermaid export

### Known Limitations

- Qualified and unqualified names are only linked when the bare name is
  unambiguous
- Column-level lineage is not tracked
"""
