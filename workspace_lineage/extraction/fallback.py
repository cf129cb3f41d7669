"""
Pattern-based reference extraction.

Used when SQL text cannot be parsed. Works on a masked copy of the text in
which comments and string literals are blanked, so keywords inside them are
never matched, while offsets and line numbers still line up with the
original.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from workspace_lineage.models.reference import Clause, Definition, DefinitionKind, Reference
from workspace_lineage.utils.identifiers import split_qualified, strip_quotes
from workspace_lineage.utils.sql_text import HASH_COMMENT_DIALECTS, line_of, mask_sql

_IDENT = r'(?:"[^"\n]+"|`[^`\n]+`|\[[^\]\n]+\]|[A-Za-z_#@][\w$#@]*)'
_QUALIFIED = rf"{_IDENT}(?:\s*\.\s*{_IDENT})*"
_PREFIX = r"(?:(?:LATERAL|ONLY|TABLE)\s+)?"

_SOURCE_PATTERNS = [
    (Clause.DELETE, re.compile(rf"\bDELETE\s+FROM\s+({_QUALIFIED})", re.IGNORECASE)),
    (Clause.FROM, re.compile(rf"\bFROM\s+{_PREFIX}({_QUALIFIED})", re.IGNORECASE)),
    (Clause.JOIN, re.compile(rf"\bJOIN\s+{_PREFIX}({_QUALIFIED})", re.IGNORECASE)),
    (Clause.INTO, re.compile(rf"\b(?:INTO|OVERWRITE)\s+(?:TABLE\s+)?({_QUALIFIED})", re.IGNORECASE)),
    (Clause.UPDATE, re.compile(rf"\bUPDATE\s+({_QUALIFIED})", re.IGNORECASE)),
]

_LIST_CONTINUATION = re.compile(
    rf"(?:\s+(?:AS\s+)?({_IDENT}))?\s*,\s*{_PREFIX}({_QUALIFIED})", re.IGNORECASE
)

_ALIAS = re.compile(rf"\s+(?:AS\s+)?({_IDENT})", re.IGNORECASE)

_CREATE_PATTERN = re.compile(
    r"\bCREATE\s+(?:OR\s+REPLACE\s+)?"
    r"(?:(?:GLOBAL|LOCAL|TEMP|TEMPORARY|MATERIALIZED|SECURE|TRANSIENT|UNLOGGED|"
    r"EXTERNAL|VOLATILE|RECURSIVE|MULTISET)\s+)*"
    rf"(TABLE|VIEW)\s+(?:IF\s+NOT\s+EXISTS\s+)?({_QUALIFIED})",
    re.IGNORECASE,
)

_CTE_PATTERN = re.compile(
    rf"(?:\bWITH\s+(?:RECURSIVE\s+)?|,\s*)({_IDENT})\s*(?:\([^()]*\)\s*)?"
    r"AS\s*(?:NOT\s+)?(?:MATERIALIZED\s+)?\(",
    re.IGNORECASE,
)

# UPDATE preceded by one of these is not a write target (FOR UPDATE,
# ON DUPLICATE KEY UPDATE, DO UPDATE, INSERT OR UPDATE, THEN UPDATE).
_NON_TARGET_UPDATE = re.compile(r"\b(?:FOR|KEY|DO|ON|OR|THEN|BEFORE|AFTER)\s*$", re.IGNORECASE)

# FROM inside these calls is part of the argument syntax.
_FROM_FUNCTIONS = frozenset({"EXTRACT", "SUBSTRING", "SUBSTR", "TRIM", "POSITION", "OVERLAY"})

# Words that can follow FROM, JOIN or a name without being a name themselves.
_NOT_NAMES = frozenset(
    {
        "ALL", "ALTER", "AND", "ANY", "APPLY", "AS", "BETWEEN", "BY", "CASE", "CONNECT",
        "CREATE", "CROSS", "DELETE", "DISTINCT", "DROP", "ELSE", "END", "EXCEPT", "EXISTS",
        "FETCH", "FOR", "FROM", "FULL", "GROUP", "HAVING", "IF", "IN", "INNER", "INSERT",
        "INTERSECT", "INTO", "IS", "JOIN", "LATERAL", "LEFT", "LIKE", "LIMIT", "MERGE",
        "MINUS", "NATURAL", "NOT", "NULL", "OFFSET", "ON", "ONLY", "OR", "ORDER", "OUTER",
        "OVER", "PARTITION", "PIVOT", "QUALIFY", "REPLACE", "RETURNING", "RIGHT", "SELECT",
        "SET", "START", "TABLE", "TABLESAMPLE", "THEN", "TRUNCATE", "UNION", "UNPIVOT",
        "UPDATE", "USING", "VALUES", "VIEW", "WHEN", "WHERE", "WINDOW", "WITH",
    }
)


@dataclass
class FallbackResult:
    references: list[Reference] = field(default_factory=list)
    definitions: list[Definition] = field(default_factory=list)


def _clean_name(raw: str) -> str:
    return ".".join(strip_quotes(part) for part in split_qualified(raw))


def _statement_spans(masked: str) -> list[tuple[int, int]]:
    """Offsets of the non-empty ``;``-separated segments."""
    spans = []
    start = 0
    for match in re.finditer(";", masked):
        if masked[start : match.start()].strip():
            spans.append((start, match.start()))
        start = match.end()
    if masked[start:].strip():
        spans.append((start, len(masked)))
    return spans


def _statement_index(spans: list[tuple[int, int]], offset: int) -> int:
    for index, (start, end) in enumerate(spans):
        if offset <= end:
            return index
    return max(len(spans) - 1, 0)


def _enclosing_call(masked: str, pos: int) -> Optional[str]:
    """Name of the function whose argument list contains ``pos``, if any."""
    depth = 0
    stop = masked.rfind(";", 0, pos)
    for k in range(pos - 1, stop, -1):
        ch = masked[k]
        if ch == ")":
            depth += 1
        elif ch == "(":
            if depth == 0:
                match = re.search(r"(\w+)\s*$", masked[max(stop + 1, k - 64) : k])
                return match.group(1).upper() if match else None
            depth -= 1
    return None


_CALL = re.compile(r"\s*\(")


def _is_call(masked: str, end: int) -> bool:
    return _CALL.match(masked, end) is not None


def _is_name(raw: str) -> bool:
    last = strip_quotes(split_qualified(raw)[-1])
    if raw.lstrip()[:1] in ('"', "`", "["):
        return True
    return last.upper() not in _NOT_NAMES and not last.startswith("@")


def extract_with_patterns(
    sql_text: str, file_path: str, dialect: Optional[str] = None
) -> FallbackResult:
    """Extract references and definitions with regular expressions.

    Args:
        sql_text: SQL source text.
        file_path: File path recorded on the results.
        dialect: Normalized dialect; MySQL-family dialects treat every
            ``#`` as a comment.

    Returns:
        FallbackResult with references in order of appearance and
        definitions (including CTEs) in order of appearance.

    Example:
        >>> result = extract_with_patterns("SEL * FROM orders o", "q.sql")
        >>> [(r.name, r.alias) for r in result.references]
        [('orders', 'o')]
    """
    masked = mask_sql(
        sql_text, mask_strings=True, hash_comments=dialect in HASH_COMMENT_DIALECTS
    )
    spans = _statement_spans(masked)
    found: list[tuple[int, Reference]] = []
    delete_targets: set[int] = set()

    def add(clause: Clause, raw: str, start: int, end: int) -> None:
        if not _is_name(raw):
            return
        if clause != Clause.INTO and _is_call(masked, end):
            return
        alias = None
        alias_match = _ALIAS.match(masked, end)
        if (
            alias_match
            and alias_match.group(1).upper() not in _NOT_NAMES
            and not _is_call(masked, alias_match.end())
        ):
            alias = strip_quotes(alias_match.group(1))
        found.append(
            (
                start,
                Reference(
                    name=_clean_name(raw),
                    file_path=file_path,
                    line=line_of(masked, start),
                    statement_index=_statement_index(spans, start),
                    clause=clause,
                    alias=alias,
                ),
            )
        )

    for clause, pattern in _SOURCE_PATTERNS:
        for match in pattern.finditer(masked):
            start, end = match.span(1)
            if clause == Clause.DELETE:
                delete_targets.add(start)
            elif clause == Clause.FROM:
                if start in delete_targets:
                    continue
                if _enclosing_call(masked, match.start()) in _FROM_FUNCTIONS:
                    continue
            elif clause == Clause.UPDATE:
                if _NON_TARGET_UPDATE.search(masked, max(0, match.start() - 32), match.start()):
                    continue
            add(clause, match.group(1), start, end)

            if clause in (Clause.FROM, Clause.JOIN) and not _is_call(masked, end):
                pos = end
                while True:
                    more = _LIST_CONTINUATION.match(masked, pos)
                    if not more:
                        break
                    alias = more.group(1)
                    if alias and alias.upper() in _NOT_NAMES:
                        break
                    add(Clause.FROM, more.group(2), *more.span(2))
                    pos = more.end(2)

    found.sort(key=lambda item: item[0])

    definitions: list[tuple[int, Definition]] = []
    for match in _CREATE_PATTERN.finditer(masked):
        start = match.start(2)
        kind = DefinitionKind.VIEW if match.group(1).upper() == "VIEW" else DefinitionKind.TABLE
        definitions.append(
            (
                start,
                Definition(
                    name=_clean_name(match.group(2)),
                    kind=kind,
                    file_path=file_path,
                    line=line_of(masked, start),
                    statement_index=_statement_index(spans, start),
                ),
            )
        )
    for match in _CTE_PATTERN.finditer(masked):
        start = match.start(1)
        if not _is_name(match.group(1)):
            continue
        definitions.append(
            (
                start,
                Definition(
                    name=_clean_name(match.group(1)),
                    kind=DefinitionKind.CTE,
                    file_path=file_path,
                    line=line_of(masked, start),
                    statement_index=_statement_index(spans, start),
                ),
            )
        )
    definitions.sort(key=lambda item: item[0])

    return FallbackResult(
        references=[ref for _, ref in found],
        definitions=[definition for _, definition in definitions],
    )
