"""
Identifier helpers.

Object names are compared case-insensitively with quoting removed. These
helpers produce the canonical node keys used by the dependency graph.
"""

from __future__ import annotations

FILE_NODE_PREFIX = "file:"

SQL_FILE_SUFFIXES = (".sql", ".ddl", ".dml", ".hql", ".psql", ".pgsql", ".tsql")

_QUOTE_PAIRS = {'"': '"', "`": "`", "[": "]"}


def strip_quotes(part: str) -> str:
    """Remove one level of identifier quoting from a name part.

    Example:
        >>> strip_quotes('"Orders"')
        'Orders'
        >>> strip_quotes("[dbo]")
        'dbo'
    """
    part = part.strip()
    if len(part) >= 2 and part[0] in _QUOTE_PAIRS:
        closing = _QUOTE_PAIRS[part[0]]
        if part[-1] == closing:
            inner = part[1:-1]
            return inner.replace(closing * 2, closing)
    return part


def normalize_identifier(name: str) -> str:
    """Return the case-insensitive identity of an object name.

    Example:
        >>> normalize_identifier('Sales."Orders"')
        'sales.orders'
    """
    parts = [strip_quotes(p) for p in split_qualified(name)]
    return ".".join(p for p in parts if p).lower()


def split_qualified(name: str) -> list[str]:
    """Split a possibly quoted qualified name on dots outside quotes.

    Example:
        >>> split_qualified('db."my.schema".t')
        ['db', '"my.schema"', 't']
    """
    parts: list[str] = []
    current: list[str] = []
    closing: str | None = None
    for ch in name.strip():
        if closing:
            current.append(ch)
            if ch == closing:
                closing = None
        elif ch in _QUOTE_PAIRS:
            closing = _QUOTE_PAIRS[ch]
            current.append(ch)
        elif ch == ".":
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts]


def bare_name(node_id: str) -> str:
    """Return the last dotted segment of a normalized name."""
    return node_id.rsplit(".", 1)[-1]


def looks_like_path(name: str) -> bool:
    """True for a name that reads as a file path rather than an object name.

    Example:
        >>> looks_like_path("marts/orders.sql")
        True
        >>> looks_like_path("sales.orders")
        False
    """
    if "/" in name or "\\" in name:
        return True
    return name.strip().lower().endswith(SQL_FILE_SUFFIXES)


def file_node_id(path: str) -> str:
    """Node identifier for a file-kind node."""
    return f"{FILE_NODE_PREFIX}{path}"


def is_file_node_id(node_id: str) -> bool:
    return node_id.startswith(FILE_NODE_PREFIX)
