"""
Reference extraction.

Parser-driven extraction of table references and definitions, with a
pattern-based fallback for SQL that cannot be parsed.
"""

from workspace_lineage.extraction.fallback import FallbackResult, extract_with_patterns
from workspace_lineage.extraction.reference_extractor import (
    ExtractionResult,
    ReferenceExtractor,
)

__all__ = [
    "ExtractionResult",
    "FallbackResult",
    "ReferenceExtractor",
    "extract_with_patterns",
]
