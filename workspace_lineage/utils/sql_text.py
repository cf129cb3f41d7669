"""
Comment and literal masking for SQL text.

Masked regions are replaced by spaces while newlines are kept, so offsets
and line numbers computed on the masked text match the original.
"""

from __future__ import annotations

HASH_COMMENT_DIALECTS = frozenset({"mysql", "mariadb"})


def _blank(text: str) -> str:
    return "".join(ch if ch in "\r\n" else " " for ch in text)


def is_hash_comment(text: str, pos: int, hash_comments: bool) -> bool:
    """Check whether the ``#`` at ``pos`` starts a line comment.

    ``#`` is always a comment for the MySQL family. Elsewhere it only
    counts when followed by whitespace, so ``#temp`` table names survive.
    """
    if hash_comments:
        return True
    return pos + 1 >= len(text) or text[pos + 1].isspace()


def mask_sql(text: str, mask_strings: bool = False, hash_comments: bool = False) -> str:
    """Blank out comments (and optionally string literals) in SQL text.

    Args:
        text: SQL source text.
        mask_strings: If True, single-quoted literals are blanked as well,
            quotes included.
        hash_comments: If True, every ``#`` starts a line comment.

    Returns:
        Text of the same length with the masked regions replaced by spaces.

    Example:
        >>> mask_sql("SELECT 1 -- FROM t\\nFROM real")
        'SELECT 1          \\nFROM real'
    """
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if ch == "-" and nxt == "-" or ch == "#" and is_hash_comment(text, i, hash_comments):
            end = _line_end(text, i)
            out.append(_blank(text[i:end]))
            i = end
        elif ch == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            end = n if end < 0 else end + 2
            out.append(_blank(text[i:end]))
            i = end
        elif ch == "'":
            end = _quoted_end(text, i, "'")
            chunk = text[i:end]
            out.append(_blank(chunk) if mask_strings else chunk)
            i = end
        elif ch in ('"', "`"):
            end = _quoted_end(text, i, ch)
            out.append(text[i:end])
            i = end
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _line_end(text: str, start: int) -> int:
    end = text.find("\n", start)
    return len(text) if end < 0 else end


def _quoted_end(text: str, start: int, quote: str) -> int:
    """Index just past the closing quote; unterminated runs to the end."""
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\" and quote == "'":
            i += 2
            continue
        if ch == quote:
            if i + 1 < n and text[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return n


def line_of(text: str, offset: int) -> int:
    """1-based line number of a character offset."""
    return text.count("\n", 0, offset) + 1
