"""
Index manager for workspace files.

This module defines the IndexManager class, which keeps the dependency
graph in step with the files of a workspace. It performs the initial scan
and drains a debounced update queue fed by file-change events.

The manager can persist extraction results to an IndexCache so a later
session only re-extracts files whose content changed.

Queue items move through ``queued -> verifying -> (indexing | removed) ->
done``. Failures are contained per item: the failing file keeps its last
good contribution in the graph and the queue moves on.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

from workspace_lineage.exceptions import (
    FileUnavailable,
    GraphInconsistency,
    IOFailure,
    LineageError,
)
from workspace_lineage.extraction.reference_extractor import ExtractionResult, ReferenceExtractor
from workspace_lineage.graph.dependency_graph import DependencyGraph
from workspace_lineage.index.cache import CachedFile, IndexCache, config_fingerprint
from workspace_lineage.index.scanner import (
    discover_files,
    matches_patterns,
    read_source,
    workspace_path,
)
from workspace_lineage.models.config import IndexConfig
from workspace_lineage.models.source_file import ParseStatus, SourceFile, content_hash
from workspace_lineage.utils.warnings import WarningCollector

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    """Kind of file-system change reported by the host."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class QueueItemState(str, Enum):
    QUEUED = "queued"
    VERIFYING = "verifying"
    INDEXING = "indexing"
    REMOVED = "removed"
    DONE = "done"


@dataclass
class FileEvent:
    """A change event for one path.

    Attributes:
        path: Path of the changed file.
        change_kind: What happened to it.
        content: In-memory content (e.g. an unsaved editor buffer). When
            given, the file is not read from disk.
        old_path: Previous path, for renames.
    """

    path: str
    change_kind: ChangeKind
    content: Optional[Union[str, bytes]] = None
    old_path: Optional[str] = None


@dataclass
class ScanResult:
    """Counts from a full workspace scan.

    ``indexed`` counts files extracted by this scan; ``cached`` counts files
    restored from the index cache without extraction.
    """

    total_files: int = 0
    indexed: int = 0
    cached: int = 0
    unchanged: int = 0
    fallback: int = 0
    failed: int = 0
    removed: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFiles": self.total_files,
            "indexed": self.indexed,
            "cached": self.cached,
            "unchanged": self.unchanged,
            "fallback": self.fallback,
            "failed": self.failed,
            "removed": self.removed,
            "durationSeconds": round(self.duration_seconds, 3),
        }


@dataclass
class _Prepared:
    key: str
    digest: Optional[str] = None
    result: Optional[ExtractionResult] = None
    unchanged: bool = False
    from_cache: bool = False
    missing: bool = False
    error: Optional[str] = None


StateListener = Callable[[str, QueueItemState], None]


class IndexManager:
    """Keeps the dependency graph in step with workspace files.

    One instance per workspace session. The manager owns the SourceFile
    records; the graph is only mutated through its file-scoped operations.

    Args:
        root: Workspace root directory.
        graph: Dependency graph to maintain.
        extractor: Reference extractor used for every file.
        config: Index configuration; defaults to ``IndexConfig()``.
        state_listener: Optional callback invoked on every queue item state
            change, from the draining thread.

    Example:
        >>> manager = IndexManager("warehouse", DependencyGraph(), ReferenceExtractor())
        >>> manager.scan().indexed
        12
        >>> manager.handle_event("marts/orders.sql", "modified")
        True
        >>> manager.flush()
        1
    """

    def __init__(
        self,
        root: Union[str, Path],
        graph: DependencyGraph,
        extractor: ReferenceExtractor,
        config: Optional[IndexConfig] = None,
        state_listener: Optional[StateListener] = None,
    ) -> None:
        self.root = Path(root)
        self.graph = graph
        self.extractor = extractor
        self.config = config or IndexConfig()
        self.warnings = WarningCollector()
        self._state_listener = state_listener

        self._files: dict[str, SourceFile] = {}
        self._states: dict[str, QueueItemState] = {}
        self._pending: dict[str, FileEvent] = {}
        self._state_lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._drain_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._closed = False

        self.cache: Optional[IndexCache] = None
        if self.config.cache_path:
            cache_path = self._absolute(self.config.cache_path)
            self.cache = IndexCache(
                cache_path, config_fingerprint(self.config), self.config.cache_ttl_hours
            )
        self._cached: dict[str, CachedFile] = {}
        self._cache_loaded = False
        self._scanned = False

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Initial scan
    # ------------------------------------------------------------------

    def scan(self, root: Optional[Union[str, Path]] = None) -> ScanResult:
        """Index every matching file under the workspace root.

        Files are read and extracted in parallel; results are applied to
        the graph one at a time in sorted path order. Files tracked from an
        earlier scan that no longer exist are removed when the whole
        workspace root is scanned.

        When caching is on, the cache is loaded on the first scan and files
        whose content hash matches a cached entry are applied without
        extraction. The cache is rewritten when the scan finishes.

        Args:
            root: Directory to scan; defaults to the workspace root.

        Returns:
            ScanResult with per-outcome counts.
        """
        self._check_open()
        started = time.monotonic()
        scan_root = Path(root) if root is not None else self.root
        self._load_cache()
        paths = discover_files(scan_root, self.config.file_patterns, self.config.exclude_dirs)
        keyed = {workspace_path(self.root, path): path for path in paths}
        logger.info("Scanning %d file(s) under %s", len(keyed), scan_root)

        with ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="workspace-lineage-scan"
        ) as pool:
            futures = {
                key: pool.submit(self._prepare_safely, key, path, None)
                for key, path in keyed.items()
            }
            prepared = {key: future.result() for key, future in futures.items()}

        summary = ScanResult(total_files=len(keyed))
        with self._drain_lock:
            for key in sorted(prepared):
                if prepared[key].missing:
                    self._remove(key)
                    summary.removed += 1
                    continue
                status = self._commit(prepared[key])
                if status is None:
                    summary.unchanged += 1
                elif status == ParseStatus.FAILED:
                    summary.failed += 1
                else:
                    if prepared[key].from_cache:
                        summary.cached += 1
                    else:
                        summary.indexed += 1
                    if status == ParseStatus.FALLBACK:
                        summary.fallback += 1

            if scan_root == self.root:
                for key in self._tracked_keys():
                    if key not in keyed:
                        self._remove(key)
                        summary.removed += 1

        self._scanned = True
        self.persist_index()
        summary.duration_seconds = time.monotonic() - started
        logger.info(
            "Scan finished: %d indexed, %d cached, %d unchanged, %d failed in %.2fs",
            summary.indexed,
            summary.cached,
            summary.unchanged,
            summary.failed,
            summary.duration_seconds,
        )
        return summary

    # ------------------------------------------------------------------
    # Update queue
    # ------------------------------------------------------------------

    def handle_event(
        self,
        path: Union[str, Path],
        change_kind: Union[ChangeKind, str],
        content: Optional[Union[str, bytes]] = None,
        old_path: Optional[Union[str, Path]] = None,
    ) -> bool:
        """Queue a file-change event.

        A rename is queued as a deletion of ``old_path`` followed by a
        creation of ``path``.

        Args:
            path: Changed file.
            change_kind: ``created``, ``modified``, ``deleted`` or
                ``renamed``.
            content: Optional in-memory content to index instead of disk.
            old_path: Previous path; required for renames.

        Returns:
            True if anything was queued.

        Raises:
            ValueError: For an unknown change kind or a rename without
                ``old_path``.
            LineageError: If the manager is closed.
        """
        kind = ChangeKind(change_kind)
        if kind == ChangeKind.RENAMED:
            if old_path is None:
                raise ValueError("A rename event requires old_path")
            removed = self.enqueue(FileEvent(str(old_path), ChangeKind.DELETED))
            created = self.enqueue(FileEvent(str(path), ChangeKind.CREATED, content))
            return removed or created
        return self.enqueue(FileEvent(str(path), kind, content))

    def enqueue(self, event: FileEvent) -> bool:
        """Add an event to the queue, replacing any pending event for its path."""
        self._check_open()
        key = workspace_path(self.root, event.path)
        with self._state_lock:
            tracked = key in self._files
        if not tracked and not matches_patterns(
            key, self.config.file_patterns, self.config.exclude_dirs
        ):
            logger.debug("Ignoring event for non-matching path %s", key)
            return False

        with self._pending_lock:
            self._pending.pop(key, None)
            self._pending[key] = event
        self._set_state(key, QueueItemState.QUEUED)
        logger.debug("Queued %s event for %s", event.change_kind.value, key)
        self._schedule_flush()
        return True

    def _schedule_flush(self) -> None:
        with self._pending_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.config.debounce_seconds, self._debounced_flush)
            self._timer.daemon = True
            self._timer.start()

    def _debounced_flush(self) -> None:
        if self._closed:
            return
        self.flush()

    def flush(self) -> int:
        """Drain the queue synchronously.

        Only one drain runs at a time. The loop stops between items once
        the manager is closed. When caching is on and a scan has run, the
        cache is rewritten after a drain that processed anything.

        Returns:
            Number of items processed.
        """
        processed = 0
        with self._drain_lock:
            while not self._closed:
                with self._pending_lock:
                    if not self._pending:
                        break
                    key = next(iter(self._pending))
                    event = self._pending.pop(key)
                self._process(key, event)
                processed += 1
        if processed:
            logger.debug("Drained %d queued item(s)", processed)
            if self._scanned:
                self.persist_index()
        return processed

    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def _process(self, key: str, event: FileEvent) -> None:
        try:
            self._set_state(key, QueueItemState.VERIFYING)
            path = self._absolute(event.path)
            if event.change_kind == ChangeKind.DELETED or (
                event.content is None and not path.is_file()
            ):
                self._set_state(key, QueueItemState.REMOVED)
                self._remove(key)
                return

            self._set_state(key, QueueItemState.INDEXING)
            prepared = self._prepare_safely(key, path, event.content)
            if prepared.missing:
                self._set_state(key, QueueItemState.REMOVED)
                self._remove(key)
                return
            self._commit(prepared)
        except LineageError as e:
            logger.error("Failed to process %s: %s", key, e.message)
            self._record_failure(key, e.message)
        except Exception as e:
            logger.exception("Unexpected error while processing %s", key)
            self._record_failure(key, f"Unexpected error: {e}")
        finally:
            self._set_state(key, QueueItemState.DONE)

    # ------------------------------------------------------------------
    # Per-file processing
    # ------------------------------------------------------------------

    def _prepare_safely(
        self, key: str, path: Path, content: Optional[Union[str, bytes]]
    ) -> _Prepared:
        try:
            return self._prepare(key, path, content)
        except FileUnavailable:
            return _Prepared(key=key, missing=True)
        except IOFailure as e:
            return _Prepared(key=key, error=e.message)
        except Exception as e:
            logger.exception("Unexpected error while extracting %s", key)
            return _Prepared(key=key, error=f"Unexpected error: {e}")

    def _prepare(
        self, key: str, path: Path, content: Optional[Union[str, bytes]]
    ) -> _Prepared:
        """Read and extract a file without touching the graph."""
        if content is None:
            data = read_source(path, self.config.max_file_size)
        else:
            data = content.encode("utf-8") if isinstance(content, str) else content
            if len(data) > self.config.max_file_size:
                raise IOFailure(
                    key,
                    f"File too large: {key} ({len(data)} bytes, "
                    f"limit {self.config.max_file_size})",
                )

        digest = content_hash(data)
        with self._state_lock:
            previous = self._files.get(key)
        if (
            previous is not None
            and previous.content_hash == digest
            and previous.parse_status != ParseStatus.FAILED
        ):
            return _Prepared(key=key, digest=digest, unchanged=True)

        with self._state_lock:
            cached = self._cached.get(key)
        if cached is not None and cached.content_hash == digest:
            return _Prepared(key=key, digest=digest, result=cached.result, from_cache=True)

        result = self.extractor.extract(data, key, self.config.dialect)
        return _Prepared(key=key, digest=digest, result=result)

    def _commit(self, prepared: _Prepared) -> Optional[ParseStatus]:
        """Apply a prepared file to the graph and record its status.

        Returns:
            The new parse status, or None when the file was unchanged.
        """
        key = prepared.key
        if prepared.error is not None:
            self._record_failure(key, prepared.error)
            return ParseStatus.FAILED
        if prepared.unchanged:
            logger.debug("Content unchanged, skipping %s", key)
            return None

        result = prepared.result
        if result is None or prepared.digest is None:
            raise GraphInconsistency(f"No extraction result to apply for '{key}'")
        self.graph.apply_file_result(key, result.references, result.definitions)
        record = SourceFile(
            path=key,
            dialect=self.config.dialect,
            content_hash=prepared.digest,
            last_indexed=time.time(),
            parse_status=result.parse_status,
            error=result.error,
            reference_count=len(result.references),
            definition_count=len(result.object_definitions),
        )
        with self._state_lock:
            self._files[key] = record
            if self.cache is not None:
                self._cached[key] = CachedFile(prepared.digest, result)

        self.warnings.resolve(key, "io")
        if result.parse_status == ParseStatus.FALLBACK:
            if self.warnings.report(
                "WARNING",
                f"Parse failed, used pattern fallback: {result.error}",
                key,
                key="parse",
            ):
                logger.warning("Parse failed for %s, used pattern fallback", key)
        else:
            self.warnings.resolve(key)
        logger.debug(
            "Indexed %s%s: %d reference(s), %d definition(s)",
            key,
            " from cache" if prepared.from_cache else "",
            record.reference_count,
            record.definition_count,
        )
        return result.parse_status

    def _record_failure(self, key: str, message: str) -> None:
        """Mark a file failed, keeping its previous graph contribution."""
        with self._state_lock:
            previous = self._files.get(key)
            self._files[key] = SourceFile(
                path=key,
                dialect=self.config.dialect,
                content_hash=previous.content_hash if previous else None,
                last_indexed=time.time(),
                parse_status=ParseStatus.FAILED,
                error=message,
                reference_count=previous.reference_count if previous else 0,
                definition_count=previous.definition_count if previous else 0,
            )
        if self.warnings.report("ERROR", message, key, key="io"):
            logger.error("Indexing failed for %s: %s", key, message)

    def _remove(self, key: str) -> None:
        self.graph.remove_file(key)
        with self._state_lock:
            self._files.pop(key, None)
            self._cached.pop(key, None)
        self.warnings.resolve(key)
        logger.debug("Removed %s from the index", key)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def queue_state(self, path: Union[str, Path]) -> Optional[QueueItemState]:
        """Latest queue state of a path, or None if it was never queued."""
        key = workspace_path(self.root, path)
        with self._state_lock:
            return self._states.get(key)

    def file_statuses(self) -> list[SourceFile]:
        """SourceFile records of all indexed files, sorted by path."""
        with self._state_lock:
            return [self._files[key] for key in sorted(self._files)]

    def get_file(self, path: Union[str, Path]) -> Optional[SourceFile]:
        key = workspace_path(self.root, path)
        with self._state_lock:
            return self._files.get(key)

    # ------------------------------------------------------------------
    # Index cache
    # ------------------------------------------------------------------

    def _load_cache(self) -> None:
        if self.cache is None or self._cache_loaded:
            return
        self._cache_loaded = True
        if self.config.clear_cache_on_startup:
            self.clear_cache()
            return
        entries = self.cache.load()
        with self._state_lock:
            self._cached = entries

    def persist_index(self) -> bool:
        """Write the extraction results of indexed files to the cache.

        A write failure is reported as a warning; indexing is not affected.

        Returns:
            True if the cache file was written.
        """
        if self.cache is None:
            return False
        with self._state_lock:
            entries = {
                key: entry for key, entry in self._cached.items() if key in self._files
            }
        try:
            self.cache.save(entries)
        except IOFailure as e:
            if self.warnings.report("WARNING", e.message, e.path, key="cache"):
                logger.warning("%s", e.message)
            return False
        self.warnings.resolve(str(self.cache.path), "cache")
        return True

    def is_index_stale(self) -> bool:
        """True when caching is off or the cache file is missing, expired or unusable."""
        return self.cache is None or self.cache.is_stale()

    def clear_cache(self) -> None:
        """Delete the cache file and forget cached results.

        Files already in the graph stay indexed.
        """
        with self._state_lock:
            self._cached = {}
        if self.cache is not None:
            self.cache.clear()

    def close(self) -> None:
        """Stop the manager.

        Cancels a scheduled drain, waits for the item in flight and
        discards whatever is still queued. Further events are rejected.
        """
        if self._closed:
            return
        self._closed = True
        with self._pending_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        with self._drain_lock:
            with self._pending_lock:
                dropped = len(self._pending)
                self._pending.clear()
        logger.debug("Index manager closed, %d queued item(s) dropped", dropped)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, key: str, state: QueueItemState) -> None:
        with self._state_lock:
            self._states[key] = state
        if self._state_listener is not None:
            self._state_listener(key, state)

    def _tracked_keys(self) -> list[str]:
        with self._state_lock:
            return sorted(self._files)

    def _absolute(self, path: Union[str, Path]) -> Path:
        file_path = Path(path)
        return file_path if file_path.is_absolute() else self.root / file_path

    def _check_open(self) -> None:
        if self._closed:
            raise LineageError("Index manager is closed")

