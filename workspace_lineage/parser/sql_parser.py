"""
SQL parser implementation.

This module defines the SQLParser class, which parses SQL text with sqlglot
and converts each statement's AST into the statement model of
``workspace_lineage.models.ast``. sqlglot errors raise ParseFailure so the
reference extractor can fall back to pattern extraction. So does a
statement that sqlglot can only keep as a raw command while it still names
tables, since the model would lose those names.
"""

from __future__ import annotations

from typing import Optional

from sqlglot import exp
from sqlglot.dialects.dialect import Dialect
from sqlglot.errors import ParseError, TokenError
from sqlglot.tokens import Token, TokenType

from workspace_lineage.dialects.function_registry import normalize_dialect
from workspace_lineage.exceptions import ParseFailure
from workspace_lineage.models.ast import (
    CreateTarget,
    CteDeclaration,
    FunctionSource,
    Statement,
    StatementNode,
    TableSource,
)
from workspace_lineage.models.reference import Clause, DefinitionKind
from workspace_lineage.models.statement_type import StatementType

# Workspace dialect name -> sqlglot dialect name. Unknown names parse with
# sqlglot's generic dialect.
SQLGLOT_DIALECTS = {
    "mysql": "mysql",
    "mariadb": "mysql",
    "postgresql": "postgres",
    "transactsql": "tsql",
    "oracle": "oracle",
    "sqlite": "sqlite",
    "bigquery": "bigquery",
    "snowflake": "snowflake",
    "redshift": "redshift",
    "hive": "hive",
    "trino": "trino",
    "athena": "athena",
    "teradata": "teradata",
}

# Keyed by ``Expression.key`` (the lower-cased class name).
STATEMENT_KEYS = {
    "select": StatementType.SELECT,
    "union": StatementType.SELECT,
    "intersect": StatementType.SELECT,
    "except": StatementType.SELECT,
    "subquery": StatementType.SELECT,
    "values": StatementType.SELECT,
    "insert": StatementType.INSERT,
    "update": StatementType.UPDATE,
    "delete": StatementType.DELETE,
    "merge": StatementType.MERGE,
    "drop": StatementType.DROP,
    "alter": StatementType.ALTER,
    "altertable": StatementType.ALTER,
    "truncatetable": StatementType.TRUNCATE,
}

COMMAND_KEYWORDS = {
    "ALTER": StatementType.ALTER,
    "TRUNCATE": StatementType.TRUNCATE,
    "DROP": StatementType.DROP,
}

# Statements whose tables are collected. DDL that only names an object
# (DROP, ALTER, TRUNCATE, CREATE INDEX, ...) contributes nothing.
READING_TYPES = frozenset(
    {
        StatementType.SELECT,
        StatementType.INSERT,
        StatementType.UPDATE,
        StatementType.DELETE,
        StatementType.MERGE,
        StatementType.CREATE_TABLE,
        StatementType.CREATE_TABLE_AS,
        StatementType.CREATE_VIEW,
    }
)

# Tokens that mean a raw command still reads or writes tables.
SOURCE_TOKENS = frozenset({TokenType.FROM, TokenType.JOIN, TokenType.INTO, TokenType.UPDATE})


def _split_statements(tokens: list[Token]) -> list[list[Token]]:
    """Group tokens into statements on semicolons, dropping empty ones."""
    chunks: list[list[Token]] = [[]]
    for token in tokens:
        if token.token_type == TokenType.SEMICOLON:
            chunks.append([])
        else:
            chunks[-1].append(token)
    return [chunk for chunk in chunks if chunk]


def _position(node: Optional[exp.Expression], default: tuple[int, int]) -> tuple[int, int]:
    """(line, offset) of the first positioned identifier in ``node``."""
    if node is None:
        return default
    for identifier in node.find_all(exp.Identifier):
        meta = identifier.meta
        if "line" in meta:
            return meta["line"], meta.get("start", default[1])
    return default


def _table_name(table: exp.Table) -> str:
    return ".".join(part.name for part in table.parts)


def _function_name(table: exp.Table) -> str:
    func = table.this
    name = func.name if isinstance(func, exp.Anonymous) else func.sql_name().lower()
    prefix = [table.catalog, table.db]
    return ".".join([part for part in prefix if part] + [name])


def _clause_for(table: exp.Table) -> Clause:
    """Clause a table appears in, from its position in the tree."""
    node: exp.Expression = table
    parent = table.parent
    if isinstance(parent, exp.Schema):
        node, parent = parent, parent.parent
    arg = node.arg_key

    if isinstance(parent, exp.Join):
        if any(parent.args.get(k) for k in ("on", "using", "side", "kind", "method")):
            return Clause.JOIN
        # Comma-separated FROM list.
        return Clause.FROM
    if isinstance(parent, exp.Into):
        return Clause.INTO
    if isinstance(parent, exp.Insert) and arg == "this":
        return Clause.INTO
    if isinstance(parent, exp.Merge):
        return Clause.INTO if arg == "this" else Clause.USING
    if isinstance(parent, exp.Update) and arg == "this":
        return Clause.UPDATE
    if isinstance(parent, exp.Delete):
        return Clause.USING if arg == "using" else Clause.DELETE
    return Clause.FROM


def _classify(expression: exp.Expression) -> StatementType:
    if isinstance(expression, exp.Create):
        kind = (expression.args.get("kind") or "").upper()
        if kind == "VIEW":
            return StatementType.CREATE_VIEW
        if kind == "TABLE":
            if expression.expression is not None:
                return StatementType.CREATE_TABLE_AS
            return StatementType.CREATE_TABLE
        return StatementType.CREATE_OTHER
    if isinstance(expression, exp.Command):
        keyword = str(expression.this or "").upper()
        if keyword.startswith("CREATE"):
            return StatementType.CREATE_OTHER
        return COMMAND_KEYWORDS.get(keyword, StatementType.OTHER)
    return STATEMENT_KEYS.get(expression.key, StatementType.OTHER)


def _create_target(expression: exp.Expression) -> Optional[exp.Table]:
    if not isinstance(expression, exp.Create):
        return None
    target = expression.this
    if isinstance(target, exp.Schema):
        target = target.this
    return target if isinstance(target, exp.Table) else None


def _convert(
    expression: exp.Expression, chunk: list[Token], index: int
) -> Statement:
    """Convert one sqlglot statement into the statement model."""
    first = chunk[0]
    default = (first.line, first.start)
    statement_type = _classify(expression)

    if isinstance(expression, exp.Command) and any(
        token.token_type in SOURCE_TOKENS for token in chunk
    ):
        raise ParseFailure(
            f"Unsupported {expression.this} statement names tables sqlglot cannot parse",
            first.line,
        )

    positioned: list[tuple[int, int, StatementNode]] = []

    def add(node_position: tuple[int, int], node: StatementNode) -> None:
        positioned.append((node_position[1], len(positioned), node))

    target = _create_target(expression)
    if target is not None and statement_type in READING_TYPES:
        position = _position(target, default)
        kind = (
            DefinitionKind.VIEW
            if statement_type == StatementType.CREATE_VIEW
            else DefinitionKind.TABLE
        )
        add(position, CreateTarget(name=_table_name(target), kind=kind, line=position[0]))

    if statement_type in READING_TYPES:
        for cte in expression.find_all(exp.CTE):
            name = cte.alias
            if not name:
                continue
            position = _position(cte.args.get("alias"), default)
            add(position, CteDeclaration(name=name, line=position[0]))

        for table in expression.find_all(exp.Table):
            if table is target or table.find_ancestor(exp.Reference):
                continue
            if isinstance(table.this, exp.Func):
                position = _position(table, default)
                add(
                    position,
                    FunctionSource(
                        name=_function_name(table),
                        clause=_clause_for(table),
                        line=position[0],
                    ),
                )
                continue
            if not isinstance(table.this, exp.Identifier):
                continue
            name = _table_name(table)
            if not name or name.startswith("@"):
                continue
            position = _position(table.this, default)
            add(
                position,
                TableSource(
                    name=name,
                    clause=_clause_for(table),
                    line=position[0],
                    alias=table.alias or None,
                ),
            )

    positioned.sort(key=lambda item: (item[0], item[1]))
    return Statement(
        index=index,
        statement_type=statement_type,
        line=first.line,
        nodes=[node for _, _, node in positioned],
    )


class SQLParser:
    """SQL parser that converts SQL text into the statement model.

    sqlglot tokenizes and parses the text in the configured dialect; each
    statement's AST is then converted into ``Statement`` nodes. Line
    numbers come from the sqlglot tokens, so comments and blank lines are
    accounted for.

    Attributes:
        dialect: Default dialect for ``parse``.

    Example:
        >>> parser = SQLParser()
        >>> statements = parser.parse("CREATE VIEW v AS SELECT * FROM t")
        >>> statements[0].statement_type
        <StatementType.CREATE_VIEW: 'create_view'>
        >>> [s.name for s in statements[0].sources()]
        ['t']
    """

    def __init__(self, dialect: Optional[str] = None) -> None:
        self.dialect = normalize_dialect(dialect)

    def parse(self, sql: str, dialect: Optional[str] = None) -> list[Statement]:
        """Parse SQL text into statements.

        Args:
            sql: SQL text, possibly containing several statements.
            dialect: Dialect override; defaults to the parser's dialect.

        Returns:
            Non-empty statements in file order. Empty text gives an empty
            list.

        Raises:
            ParseFailure: If sqlglot rejects the text, or a statement cannot
                be expressed in the model.
        """
        if not sql or not sql.strip():
            return []

        name = normalize_dialect(dialect) if dialect else self.dialect
        sqlglot_dialect = Dialect.get_or_raise(SQLGLOT_DIALECTS.get(name))

        try:
            tokens = sqlglot_dialect.tokenize(sql)
        except TokenError as e:
            raise ParseFailure(f"SQL tokenizing error: {e}") from e

        statements: list[Statement] = []
        parser = sqlglot_dialect.parser()
        for chunk in _split_statements(tokens):
            try:
                expressions = parser.parse(chunk, sql)
            except ParseError as e:
                error = e.errors[0] if e.errors else {}
                raise ParseFailure(
                    f"SQL parsing error: {error.get('description', e)}",
                    error.get("line") or chunk[0].line,
                ) from e
            except Exception as e:
                # Other unexpected errors
                raise ParseFailure(
                    f"Unexpected error while parsing SQL: {e}", chunk[0].line
                ) from e

            for expression in expressions:
                if expression is None:
                    continue
                statements.append(_convert(expression, chunk, len(statements)))
        return statements
