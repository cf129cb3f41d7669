"""
Persisted index cache.

This module defines IndexCache, which keeps each indexed file's extraction
result in a JSON file keyed by content hash. A later session loads it and
skips re-extracting files whose content has not changed.

The file records the format version, the time it was written and a
fingerprint of the settings that affect extraction (dialect and custom
function names). A file from another version, another configuration or
older than the TTL is ignored.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from workspace_lineage.exceptions import IOFailure
from workspace_lineage.extraction.reference_extractor import ExtractionResult
from workspace_lineage.models.config import IndexConfig

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 1


def config_fingerprint(config: IndexConfig) -> str:
    """Hash of the settings that change what extraction produces.

    Example:
        >>> config_fingerprint(IndexConfig()) == config_fingerprint(IndexConfig())
        True
        >>> config_fingerprint(IndexConfig(dialect="oracle")) == config_fingerprint(IndexConfig())
        False
    """
    settings = {
        "dialect": config.dialect,
        "aggregates": sorted(name.upper() for name in config.custom_aggregates),
        "window": sorted(name.upper() for name in config.custom_window),
        "tableValued": sorted(name.upper() for name in config.custom_table_valued),
    }
    return hashlib.sha256(json.dumps(settings, sort_keys=True).encode("utf-8")).hexdigest()


@dataclass
class CachedFile:
    """Extraction result of one file and the content hash it was made from."""

    content_hash: str
    result: ExtractionResult

    def to_dict(self) -> dict[str, Any]:
        return {"contentHash": self.content_hash, "result": self.result.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CachedFile":
        return cls(
            content_hash=data["contentHash"],
            result=ExtractionResult.from_dict(data["result"]),
        )


class IndexCache:
    """JSON file holding extraction results between sessions.

    Args:
        path: Cache file location.
        fingerprint: ``config_fingerprint`` of the session's config.
        ttl_hours: Maximum age of a usable cache file.

    Example:
        >>> cache = IndexCache(".workspace-lineage/index.json", config_fingerprint(config))
        >>> entries = cache.load()
        >>> cache.save(entries)
    """

    def __init__(
        self, path: Union[str, Path], fingerprint: str, ttl_hours: float = 24.0
    ) -> None:
        self.path = Path(path)
        self.fingerprint = fingerprint
        self.ttl_hours = ttl_hours

    def load(self) -> dict[str, CachedFile]:
        """Read the cached entries.

        Returns:
            Entries keyed by workspace path. Empty when the file is missing,
            unreadable, stale or written for another version or config.
        """
        data = self._read()
        if data is None:
            return {}
        entries: dict[str, CachedFile] = {}
        for key, item in data.get("files", {}).items():
            try:
                entries[key] = CachedFile.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Ignoring invalid cache entry for %s: %s", key, e)
        logger.info("Loaded %d cached file(s) from %s", len(entries), self.path)
        return entries

    def save(self, entries: dict[str, CachedFile]) -> None:
        """Write entries to the cache file, replacing it.

        Raises:
            IOFailure: If the file cannot be written.
        """
        data = {
            "version": CACHE_FORMAT_VERSION,
            "fingerprint": self.fingerprint,
            "lastUpdated": time.time(),
            "files": {key: entries[key].to_dict() for key in sorted(entries)},
        }
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(data, indent=1), encoding="utf-8")
            os.replace(temp_path, self.path)
        except OSError as e:
            raise IOFailure(str(self.path), f"Cannot write index cache {self.path}: {e}") from e
        logger.debug("Persisted %d file(s) to %s", len(entries), self.path)

    def is_stale(self) -> bool:
        """True when there is no usable cache file."""
        return self._read() is None

    def clear(self) -> None:
        """Delete the cache file if it exists."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise IOFailure(str(self.path), f"Cannot delete index cache {self.path}: {e}") from e
        logger.info("Cleared index cache %s", self.path)

    def _read(self) -> Optional[dict[str, Any]]:
        if not self.path.is_file():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable index cache %s: %s", self.path, e)
            return None

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed index cache %s", self.path)
            return None
        if data.get("version") != CACHE_FORMAT_VERSION:
            logger.info("Index cache %s has another format version, ignoring", self.path)
            return None
        if data.get("fingerprint") != self.fingerprint:
            logger.info("Index cache %s was built with other settings, ignoring", self.path)
            return None
        last_updated = data.get("lastUpdated")
        if not isinstance(last_updated, (int, float)):
            return None
        if time.time() - last_updated > self.ttl_hours * 3600:
            logger.info("Index cache %s is older than %s hour(s), ignoring", self.path, self.ttl_hours)
            return None
        if not isinstance(data.get("files"), dict):
            return None
        return data
