"""
Dialect support.

Dialect name normalization and the per-dialect function registry.
"""

from workspace_lineage.dialects.function_registry import (
    DEFAULT_DIALECT,
    DialectFunctions,
    FunctionRegistry,
    normalize_dialect,
    supported_dialects,
)

__all__ = [
    "DEFAULT_DIALECT",
    "DialectFunctions",
    "FunctionRegistry",
    "normalize_dialect",
    "supported_dialects",
]
