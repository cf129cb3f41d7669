"""
Utility helpers for workspace indexing.

Identifier normalization, SQL comment masking and the warning collector.
"""

from workspace_lineage.utils.identifiers import (
    bare_name,
    file_node_id,
    is_file_node_id,
    normalize_identifier,
    strip_quotes,
)
from workspace_lineage.utils.sql_text import mask_sql
from workspace_lineage.utils.warnings import IndexWarning, WarningCollector

__all__ = [
    "IndexWarning",
    "WarningCollector",
    "bare_name",
    "file_node_id",
    "is_file_node_id",
    "mask_sql",
    "normalize_identifier",
    "strip_quotes",
]
