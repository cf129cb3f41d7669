"""
Indexed file record.

This module defines SourceFile, the index manager's record of one workspace
file, and ParseStatus.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ParseStatus(str, Enum):
    """Outcome of the last indexing attempt for a file.

    Attributes:
        OK: Statements were parsed and extracted.
        FALLBACK: Parsing failed; pattern extraction was used.
        FAILED: The file could not be read or was rejected.
    """

    OK = "ok"
    FALLBACK = "fallback"
    FAILED = "failed"


def content_hash(data: bytes) -> str:
    """SHA-256 hex digest of raw file content."""
    return hashlib.sha256(data).hexdigest()


@dataclass
class SourceFile:
    """Index record of one SQL file.

    A new instance replaces the old one on every indexing attempt.

    Attributes:
        path: Workspace path, unique key.
        dialect: Normalized dialect used for extraction.
        content_hash: SHA-256 of the content last indexed successfully.
        last_indexed: Unix timestamp of the attempt.
        parse_status: Outcome of the attempt.
        error: Error message when the attempt failed or fell back.
        reference_count: Number of references extracted.
        definition_count: Number of non-CTE definitions extracted.
    """

    path: str
    dialect: str
    content_hash: Optional[str]
    last_indexed: float
    parse_status: ParseStatus
    error: Optional[str] = None
    reference_count: int = 0
    definition_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "dialect": self.dialect,
            "contentHash": self.content_hash,
            "lastIndexed": self.last_indexed,
            "parseStatus": self.parse_status.value,
            "error": self.error,
            "referenceCount": self.reference_count,
            "definitionCount": self.definition_count,
        }
