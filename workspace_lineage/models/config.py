"""
Configuration model for workspace indexing.

This module defines the IndexConfig class, which controls file discovery,
the update queue, dialect handling and analysis depth limits.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Union

from workspace_lineage.dialects.function_registry import (
    DEFAULT_DIALECT,
    FunctionRegistry,
    normalize_dialect,
)
from workspace_lineage.exceptions import ConfigError

DEFAULT_EXCLUDE_DIRS = [
    "node_modules",
    ".git",
    "dist",
    "build",
    "__pycache__",
    ".venv",
]

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass
class IndexConfig:
    """Configuration settings for a workspace indexing session.

    All settings have defaults, so ``IndexConfig()`` is a working
    configuration.

    Attributes:
        dialect: SQL dialect of the workspace files. Normalized on
            construction (``"tsql"`` becomes ``"transactsql"``). Defaults
            to ``"mysql"``.
        file_patterns: Glob patterns of files to index. Defaults to
            ``["*.sql"]``.
        exclude_dirs: Directory names skipped during discovery.
        max_file_size: Files larger than this many bytes are not parsed
            and are marked failed. Defaults to 10 MiB.
        max_workers: Parse workers for the initial scan. Defaults to the
            number of CPUs.
        debounce_seconds: Delay after the last event before the update
            queue is drained. Defaults to 1.0.
        lineage_max_depth: Default depth limit for lineage traces.
        impact_max_depth: Depth limit for transitive impacts. Defaults
            to 10.
        custom_aggregates: Extra aggregate function names.
        custom_window: Extra window function names.
        custom_table_valued: Extra table-valued function names.
        cache_path: JSON file that persists extraction results between
            sessions. Relative paths are resolved against the workspace
            root. None (the default) disables the cache.
        cache_ttl_hours: Age after which the cache file is ignored.
            Defaults to 24.
        clear_cache_on_startup: Delete the cache file before the first
            scan instead of loading it.

    Example:
        >>> config = IndexConfig(dialect="SQL Server", debounce_seconds=0.2)
        >>> config.dialect
        'transactsql'
        >>> IndexConfig.from_dict({"impact_max_depth": 5}).impact_max_depth
        5
    """

    dialect: str = DEFAULT_DIALECT
    file_patterns: list[str] = field(default_factory=lambda: ["*.sql"])
    exclude_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_workers: int = field(default_factory=_default_workers)
    debounce_seconds: float = 1.0
    lineage_max_depth: int = 50
    impact_max_depth: int = 10
    custom_aggregates: list[str] = field(default_factory=list)
    custom_window: list[str] = field(default_factory=list)
    custom_table_valued: list[str] = field(default_factory=list)
    cache_path: Optional[str] = None
    cache_ttl_hours: float = 24.0
    clear_cache_on_startup: bool = False

    def __post_init__(self) -> None:
        """Validate and normalize configuration settings."""
        if not isinstance(self.dialect, str):
            raise TypeError("dialect must be a string")
        self.dialect = normalize_dialect(self.dialect)

        for name in (
            "file_patterns",
            "exclude_dirs",
            "custom_aggregates",
            "custom_window",
            "custom_table_valued",
        ):
            value = getattr(self, name)
            if not isinstance(value, (list, tuple)) or not all(
                isinstance(item, str) for item in value
            ):
                raise TypeError(f"{name} must be a list of strings")
            setattr(self, name, list(value))

        for name in ("max_file_size", "max_workers", "lineage_max_depth", "impact_max_depth"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{name} must be an integer")
            if value < 1:
                raise ValueError(f"{name} must be at least 1, got {value}")

        if isinstance(self.debounce_seconds, bool) or not isinstance(
            self.debounce_seconds, (int, float)
        ):
            raise TypeError("debounce_seconds must be a number")
        if self.debounce_seconds < 0:
            raise ValueError("debounce_seconds must not be negative")

        if not self.file_patterns:
            raise ValueError("file_patterns must not be empty")

        if self.cache_path is not None and not isinstance(self.cache_path, str):
            raise TypeError("cache_path must be a string")
        if isinstance(self.cache_ttl_hours, bool) or not isinstance(
            self.cache_ttl_hours, (int, float)
        ):
            raise TypeError("cache_ttl_hours must be a number")
        if self.cache_ttl_hours <= 0:
            raise ValueError("cache_ttl_hours must be positive")
        if not isinstance(self.clear_cache_on_startup, bool):
            raise TypeError("clear_cache_on_startup must be a boolean")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IndexConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "IndexConfig":
        """Load a config from a JSON file.

        Raises:
            ConfigError: If the file cannot be read or is not a JSON object.
        """
        config_path = Path(path)
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must contain a JSON object")
        return cls.from_dict(data)

    def build_function_registry(self) -> FunctionRegistry:
        """Create the function registry for a session using this config."""
        return FunctionRegistry(
            custom_aggregates=self.custom_aggregates,
            custom_window=self.custom_window,
            custom_table_valued=self.custom_table_valued,
        )

    def merged(self, **overrides: Optional[Any]) -> "IndexConfig":
        """Copy of this config with the non-None overrides applied."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data.update({k: v for k, v in overrides.items() if v is not None})
        return IndexConfig.from_dict(data)
