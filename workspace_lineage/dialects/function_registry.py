"""
Dialect function registry.

This module defines FunctionRegistry, which answers whether a name is an
aggregate, window or table-valued function in a given dialect. The
reference extractor uses it to keep function names out of table
references. Each workspace session owns its own registry; custom function
names are passed in at construction time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from workspace_lineage.dialects.functions import COMMON_FUNCTIONS, DIALECT_FUNCTIONS

DEFAULT_DIALECT = "mysql"

DIALECT_ALIASES = {
    "sqlserver": "transactsql",
    "tsql": "transactsql",
    "mssql": "transactsql",
    "postgres": "postgresql",
    "pg": "postgresql",
}


def normalize_dialect(dialect: Optional[str]) -> str:
    """Normalize a dialect name for lookup.

    Lower-cases the name, drops non-letters and maps known aliases. An
    empty name falls back to the default dialect.

    Example:
        >>> normalize_dialect("SQL Server")
        'transactsql'
        >>> normalize_dialect("pg")
        'postgresql'
        >>> normalize_dialect(None)
        'mysql'
    """
    if not dialect:
        return DEFAULT_DIALECT
    normalized = re.sub(r"[^a-z]", "", dialect.lower())
    if not normalized:
        return DEFAULT_DIALECT
    return DIALECT_ALIASES.get(normalized, normalized)


def supported_dialects() -> list[str]:
    """Names of the dialects with built-in function data."""
    return sorted(DIALECT_FUNCTIONS)


@dataclass(frozen=True)
class DialectFunctions:
    """Merged function sets for one dialect."""

    dialect: str
    aggregates: frozenset[str]
    window: frozenset[str]
    table_valued: frozenset[str]

    def all(self) -> frozenset[str]:
        return self.aggregates | self.window | self.table_valued


def _upper_set(names: Optional[Iterable[str]]) -> frozenset[str]:
    return frozenset(name.strip().upper() for name in (names or []) if name.strip())


class FunctionRegistry:
    """Per-session lookup of dialect function names.

    Built-in common names, dialect names and the custom names given at
    construction time are merged per dialect and cached.

    Args:
        custom_aggregates: Extra aggregate function names.
        custom_window: Extra window function names.
        custom_table_valued: Extra table-valued function names.

    Example:
        >>> registry = FunctionRegistry(custom_aggregates=["my_sum"])
        >>> registry.is_aggregate("MY_SUM")
        True
        >>> registry.is_window("row_number", "postgres")
        True
        >>> registry.is_table_valued("openjson", "tsql")
        True
    """

    def __init__(
        self,
        custom_aggregates: Optional[Iterable[str]] = None,
        custom_window: Optional[Iterable[str]] = None,
        custom_table_valued: Optional[Iterable[str]] = None,
    ) -> None:
        self.custom_aggregates = _upper_set(custom_aggregates)
        self.custom_window = _upper_set(custom_window)
        self.custom_table_valued = _upper_set(custom_table_valued)
        self._cache: dict[str, DialectFunctions] = {}

    def functions_for(self, dialect: Optional[str] = None) -> DialectFunctions:
        """Get the merged function sets for a dialect.

        Unknown dialects get the common and custom sets only.
        """
        name = normalize_dialect(dialect)
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        specific = DIALECT_FUNCTIONS.get(name, {})
        merged = DialectFunctions(
            dialect=name,
            aggregates=COMMON_FUNCTIONS["aggregates"]
            | specific.get("aggregates", frozenset())
            | self.custom_aggregates,
            window=COMMON_FUNCTIONS["window"]
            | specific.get("window", frozenset())
            | self.custom_window,
            table_valued=COMMON_FUNCTIONS["table_valued"]
            | specific.get("table_valued", frozenset())
            | self.custom_table_valued,
        )
        self._cache[name] = merged
        return merged

    def is_aggregate(self, name: str, dialect: Optional[str] = None) -> bool:
        return name.upper() in self.functions_for(dialect).aggregates

    def is_window(self, name: str, dialect: Optional[str] = None) -> bool:
        return name.upper() in self.functions_for(dialect).window

    def is_table_valued(self, name: str, dialect: Optional[str] = None) -> bool:
        return name.upper() in self.functions_for(dialect).table_valued

    def is_function(self, name: str, dialect: Optional[str] = None) -> bool:
        """Check whether a name is in any of the dialect's function sets."""
        return name.upper() in self.functions_for(dialect).all()

    def aggregate_functions(self, dialect: Optional[str] = None) -> list[str]:
        return sorted(self.functions_for(dialect).aggregates)

    def window_functions(self, dialect: Optional[str] = None) -> list[str]:
        return sorted(self.functions_for(dialect).window)

    def table_valued_functions(self, dialect: Optional[str] = None) -> list[str]:
        return sorted(self.functions_for(dialect).table_valued)
