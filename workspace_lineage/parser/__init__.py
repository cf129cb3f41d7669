"""
SQL parsing module.

Converts SQL text into the statement model used by the reference extractor.
"""

from workspace_lineage.parser.sql_parser import SQLParser

__all__ = [
    "SQLParser",
]
