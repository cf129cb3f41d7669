"""
Reference extractor.

This module defines the ReferenceExtractor class, which turns the text of
one SQL file into reference and definition records. Parsing is attempted
first; when it fails the pattern-based fallback is used instead. Either way
the result is filtered the same way: CTE names declared anywhere in the file
and dialect function names are never reported as table references.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from workspace_lineage.dialects.function_registry import FunctionRegistry, normalize_dialect
from workspace_lineage.exceptions import ParseFailure
from workspace_lineage.extraction.fallback import extract_with_patterns
from workspace_lineage.models.ast import (
    CreateTarget,
    CteDeclaration,
    FunctionSource,
    Statement,
    TableSource,
)
from workspace_lineage.models.reference import Definition, DefinitionKind, Reference
from workspace_lineage.models.source_file import ParseStatus
from workspace_lineage.parser.sql_parser import SQLParser

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """References and definitions extracted from one file.

    Attributes:
        references: Table references in order of first appearance.
        definitions: Definitions in order of appearance, CTEs included.
        parse_status: OK when parsing succeeded, FALLBACK otherwise.
        error: Parse error message when the fallback was used.
    """

    references: list[Reference] = field(default_factory=list)
    definitions: list[Definition] = field(default_factory=list)
    parse_status: ParseStatus = ParseStatus.OK
    error: Optional[str] = None

    @property
    def object_definitions(self) -> list[Definition]:
        """Definitions of tables and views (CTEs excluded)."""
        return [d for d in self.definitions if d.kind != DefinitionKind.CTE]

    @property
    def cte_names(self) -> set[str]:
        return {d.key for d in self.definitions if d.kind == DefinitionKind.CTE}

    def to_dict(self) -> dict[str, Any]:
        return {
            "references": [ref.to_dict() for ref in self.references],
            "definitions": [d.to_dict() for d in self.definitions],
            "parseStatus": self.parse_status.value,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractionResult":
        return cls(
            references=[Reference.from_dict(item) for item in data["references"]],
            definitions=[Definition.from_dict(item) for item in data["definitions"]],
            parse_status=ParseStatus(data["parseStatus"]),
            error=data.get("error"),
        )


class ReferenceExtractor:
    """Extracts table references and definitions from SQL text.

    The extractor is configured once per session with a function registry
    and a parser; it holds no per-file state and can be shared by the scan
    workers.

    Args:
        registry: Function registry used to discard function names.
        parser: SQL parser; a default one is created when omitted.
        dialect: Default dialect for files without an explicit one.

    Example:
        >>> extractor = ReferenceExtractor(FunctionRegistry())
        >>> result = extractor.extract(
        ...     "WITH x AS (SELECT 1) SELECT * FROM x, real_table", "q.sql"
        ... )
        >>> [ref.name for ref in result.references]
        ['real_table']
    """

    def __init__(
        self,
        registry: Optional[FunctionRegistry] = None,
        parser: Optional[SQLParser] = None,
        dialect: Optional[str] = None,
    ) -> None:
        self.registry = registry or FunctionRegistry()
        self.dialect = normalize_dialect(dialect)
        self.parser = parser or SQLParser(self.dialect)

    def extract(
        self,
        sql_text: Union[str, bytes],
        file_path: str,
        dialect: Optional[str] = None,
    ) -> ExtractionResult:
        """Extract references and definitions from a file's content.

        Never raises for bad SQL: parse failures and undecodable bytes are
        routed to the pattern fallback.

        Args:
            sql_text: File content as text or raw bytes.
            file_path: Path recorded on every record.
            dialect: Dialect override.

        Returns:
            ExtractionResult for the file.
        """
        name = normalize_dialect(dialect) if dialect else self.dialect

        if isinstance(sql_text, bytes):
            try:
                text = sql_text.decode("utf-8")
            except UnicodeDecodeError as e:
                logger.debug("Undecodable content in %s: %s", file_path, e)
                text = sql_text.decode("utf-8", errors="replace")
                return self._fallback(
                    text, file_path, name, f"Invalid UTF-8 content: {e.reason}"
                )
        else:
            text = sql_text

        if not text.strip():
            return ExtractionResult()

        try:
            statements = self.parser.parse(text, name)
        except ParseFailure as e:
            logger.debug("Parse failed for %s, using pattern fallback: %s", file_path, e)
            return self._fallback(text, file_path, name, e.message)

        return self.extract_from_statements(text, file_path, statements, name)

    def extract_from_statements(
        self,
        sql_text: str,
        file_path: str,
        statements: Optional[list[Statement]],
        dialect: Optional[str] = None,
    ) -> ExtractionResult:
        """Extract from an already parsed statement list.

        When ``statements`` is None the pattern fallback runs on
        ``sql_text``.
        """
        name = normalize_dialect(dialect) if dialect else self.dialect
        if statements is None:
            return self._fallback(sql_text, file_path, name, "No parsed statements supplied")

        references: list[Reference] = []
        definitions: list[Definition] = []
        for statement in statements:
            for node in statement.nodes:
                if isinstance(node, TableSource):
                    references.append(
                        Reference(
                            name=node.name,
                            file_path=file_path,
                            line=node.line,
                            statement_index=statement.index,
                            clause=node.clause,
                            alias=node.alias,
                        )
                    )
                elif isinstance(node, CteDeclaration):
                    definitions.append(
                        Definition(
                            name=node.name,
                            kind=DefinitionKind.CTE,
                            file_path=file_path,
                            line=node.line,
                            statement_index=statement.index,
                        )
                    )
                elif isinstance(node, CreateTarget):
                    definitions.append(
                        Definition(
                            name=node.name,
                            kind=node.kind,
                            file_path=file_path,
                            line=node.line,
                            statement_index=statement.index,
                        )
                    )
                elif isinstance(node, FunctionSource):
                    continue
                else:
                    return self._fallback(
                        sql_text,
                        file_path,
                        name,
                        f"Unsupported statement node: {type(node).__name__}",
                    )

        return self._finish(references, definitions, name, ParseStatus.OK, None)

    def _fallback(
        self, text: str, file_path: str, dialect: str, error: str
    ) -> ExtractionResult:
        result = extract_with_patterns(text, file_path, dialect)
        return self._finish(
            result.references, result.definitions, dialect, ParseStatus.FALLBACK, error
        )

    def _finish(
        self,
        references: list[Reference],
        definitions: list[Definition],
        dialect: str,
        status: ParseStatus,
        error: Optional[str],
    ) -> ExtractionResult:
        """Apply CTE suppression, function filtering and de-duplication."""
        cte_names = {d.key for d in definitions if d.kind == DefinitionKind.CTE}

        seen: set[tuple[str, str, int, int]] = set()
        kept: list[Reference] = []
        for ref in references:
            key = ref.key
            if not key or key in cte_names:
                continue
            if "." not in key and self.registry.is_function(key, dialect):
                continue
            identity = (key, ref.clause.value, ref.line, ref.statement_index)
            if identity in seen:
                continue
            seen.add(identity)
            kept.append(ref)

        return ExtractionResult(
            references=kept,
            definitions=definitions,
            parse_status=status,
            error=error,
        )

