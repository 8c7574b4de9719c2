"""Statement-shape classification using sqlglot AST parsing.

Used where a tool accepts raw SQL text and its effect cannot be known from
the tool name alone. Handles:
- CTEs (WITH ... DELETE)
- Multi-statement SQL
- MySQL-specific syntax (REPLACE, SHOW, backtick identifiers)
- Server-level SET and SELECT ... INTO OUTFILE, which count as writes
"""
import re
import logging
from enum import Enum
from typing import Optional

import sqlglot
from sqlglot import exp

logger = logging.getLogger(__name__)

DIALECT = "mysql"


class SQLStatementType(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    REPLACE = "replace"
    UPDATE = "update"
    DELETE = "delete"
    CREATE = "create"
    DROP = "drop"
    ALTER = "alter"
    TRUNCATE = "truncate"
    RENAME = "rename"
    GRANT = "grant"
    REVOKE = "revoke"
    USE = "use"
    SHOW = "show"
    DESCRIBE = "describe"
    EXPLAIN = "explain"
    SET = "set"
    # SET GLOBAL / PERSIST / PASSWORD / ROLE: server or account state
    SET_SERVER = "set_server"
    # SELECT ... INTO OUTFILE / DUMPFILE / @var
    SELECT_INTO = "select_into"
    CALL = "call"
    UNKNOWN = "unknown"


READ_TYPES: frozenset[SQLStatementType] = frozenset(
    {
        SQLStatementType.SELECT,
        SQLStatementType.SHOW,
        SQLStatementType.DESCRIBE,
        SQLStatementType.EXPLAIN,
        SQLStatementType.SET,
        SQLStatementType.USE,
    }
)

_EXPRESSION_MAP: dict[type, SQLStatementType] = {
    exp.Select: SQLStatementType.SELECT,
    exp.Union: SQLStatementType.SELECT,
    exp.Intersect: SQLStatementType.SELECT,
    exp.Except: SQLStatementType.SELECT,
    exp.Insert: SQLStatementType.INSERT,
    exp.Update: SQLStatementType.UPDATE,
    exp.Delete: SQLStatementType.DELETE,
    exp.Create: SQLStatementType.CREATE,
    exp.Drop: SQLStatementType.DROP,
    exp.Alter: SQLStatementType.ALTER,
    exp.TruncateTable: SQLStatementType.TRUNCATE,
    exp.Grant: SQLStatementType.GRANT,
    exp.Show: SQLStatementType.SHOW,
    exp.Describe: SQLStatementType.DESCRIBE,
    exp.Use: SQLStatementType.USE,
    exp.Set: SQLStatementType.SET,
}

_COMMAND_MAP: dict[str, SQLStatementType] = {
    "EXPLAIN": SQLStatementType.EXPLAIN,
    "SHOW": SQLStatementType.SHOW,
    "DESC": SQLStatementType.DESCRIBE,
    "DESCRIBE": SQLStatementType.DESCRIBE,
    "SET": SQLStatementType.SET,
    "REPLACE": SQLStatementType.REPLACE,
    "RENAME": SQLStatementType.RENAME,
    "REVOKE": SQLStatementType.REVOKE,
    "GRANT": SQLStatementType.GRANT,
    "CALL": SQLStatementType.CALL,
    "TRUNCATE": SQLStatementType.TRUNCATE,
}

_FALLBACK_PATTERNS: list[tuple[str, SQLStatementType]] = [
    (r"^SELECT\b", SQLStatementType.SELECT),
    (r"^INSERT\b", SQLStatementType.INSERT),
    (r"^REPLACE\b", SQLStatementType.REPLACE),
    (r"^UPDATE\b", SQLStatementType.UPDATE),
    (r"^DELETE\b", SQLStatementType.DELETE),
    (r"^CREATE\b", SQLStatementType.CREATE),
    (r"^DROP\b", SQLStatementType.DROP),
    (r"^ALTER\b", SQLStatementType.ALTER),
    (r"^TRUNCATE\b", SQLStatementType.TRUNCATE),
    (r"^RENAME\b", SQLStatementType.RENAME),
    (r"^GRANT\b", SQLStatementType.GRANT),
    (r"^REVOKE\b", SQLStatementType.REVOKE),
    (r"^EXPLAIN\b", SQLStatementType.EXPLAIN),
    (r"^SHOW\b", SQLStatementType.SHOW),
    (r"^DESC(RIBE)?\b", SQLStatementType.DESCRIBE),
    (r"^SET\b", SQLStatementType.SET),
    (r"^CALL\b", SQLStatementType.CALL),
    (r"^USE\b", SQLStatementType.USE),
    # CTE detection, writes first so WITH ... DELETE is never read as SELECT
    (r"^WITH\b.*\bINSERT\b", SQLStatementType.INSERT),
    (r"^WITH\b.*\bUPDATE\b", SQLStatementType.UPDATE),
    (r"^WITH\b.*\bDELETE\b", SQLStatementType.DELETE),
    (r"^WITH\b.*\bSELECT\b", SQLStatementType.SELECT),
]

_LIMIT_CLAUSE = re.compile(r"\blimit\b", re.IGNORECASE)

# Only session and user variables count as a read-shaped SET
_SERVER_SET = re.compile(
    r"^\s*SET\s+(PASSWORD|(DEFAULT\s+)?ROLE)\b"
    r"|\b(GLOBAL|PERSIST|PERSIST_ONLY)\b"
    r"|@@(GLOBAL|PERSIST|PERSIST_ONLY)\.",
    re.IGNORECASE | re.MULTILINE,
)
_SELECT_INTO = re.compile(r"\bINTO\s+(OUTFILE|DUMPFILE|@)", re.IGNORECASE)
_SERVER_SET_KINDS = frozenset({"GLOBAL", "PERSIST", "PERSIST_ONLY"})


def classify(sql: str) -> list[SQLStatementType]:
    """Classify a SQL string into one statement type per statement.

    Falls back to leading-keyword regexes for anything sqlglot cannot parse.
    An empty list means the shape could not be determined.
    """
    types: list[SQLStatementType] = []
    try:
        statements = sqlglot.parse(sql, dialect=DIALECT)
    except sqlglot.errors.SqlglotError:
        # Classify each piece on its own; an unrecognized piece is UNKNOWN
        for piece in (p for p in sql.split(";") if p.strip()):
            fallback = _regex_fallback(piece)
            if fallback is None:
                logger.warning(f"Could not parse SQL: {piece.strip()[:100]}")
                fallback = SQLStatementType.UNKNOWN
            types.append(_refine(fallback, piece))
        return types

    statements = [stmt for stmt in statements if stmt is not None]
    for stmt in statements:
        rendered = stmt.sql(dialect=DIALECT)
        stmt_type = _classify_expression(stmt)
        if stmt_type is None:
            stmt_type = _regex_fallback(rendered)
        if stmt_type is None:
            logger.debug(f"Unrecognized statement: {type(stmt).__name__}")
            stmt_type = SQLStatementType.UNKNOWN
        # The raw text is checked too when it holds only this statement
        raw = sql if len(statements) == 1 else ""
        types.append(_refine(stmt_type, rendered, raw))
    return types


def is_write(sql: str) -> bool:
    """True if any statement in ``sql`` may modify data or schema.

    Unclassifiable SQL is treated as write-shaped.
    """
    types = classify(sql)
    if not types:
        return True
    return any(t not in READ_TYPES for t in types)


def leading_keyword(sql: str) -> str:
    parts = sql.strip().split(maxsplit=1)
    return parts[0].upper() if parts else ""


def apply_row_limit(sql: str, limit: int) -> str:
    """Append ``LIMIT`` to a single, unbounded SELECT statement.

    Statements that already mention LIMIT, that are not SELECTs, or that
    contain more than one statement are returned unchanged (minus a single
    trailing semicolon).
    """
    query = sql.strip()
    if query.endswith(";"):
        query = query[:-1].rstrip()
    if not query.lower().startswith("select"):
        return query
    if ";" in query or _LIMIT_CLAUSE.search(query):
        return query
    return f"{query} LIMIT {int(limit)}"


def _refine(stmt_type: SQLStatementType, *texts: str) -> SQLStatementType:
    """Split SET and SELECT into their state-changing variants."""
    if stmt_type == SQLStatementType.SET and any(
        _SERVER_SET.search(t) for t in texts
    ):
        return SQLStatementType.SET_SERVER
    if stmt_type == SQLStatementType.SELECT and any(
        _SELECT_INTO.search(t) for t in texts
    ):
        return SQLStatementType.SELECT_INTO
    return stmt_type


def _classify_expression(node: exp.Expression) -> Optional[SQLStatementType]:
    if isinstance(node, exp.Select) and node.args.get("into") is not None:
        return SQLStatementType.SELECT_INTO
    if isinstance(node, exp.Set) and any(
        str(item.args.get("kind") or "").upper() in _SERVER_SET_KINDS
        for item in node.expressions
    ):
        return SQLStatementType.SET_SERVER

    for expr_type, stmt_type in _EXPRESSION_MAP.items():
        if isinstance(node, expr_type):
            return stmt_type

    # EXPLAIN, REPLACE, RENAME, CALL and friends may come back as Command nodes
    if isinstance(node, exp.Command):
        cmd = node.this.upper() if isinstance(node.this, str) else ""
        return _COMMAND_MAP.get(cmd)

    return None


def _regex_fallback(sql: str) -> Optional[SQLStatementType]:
    stripped = sql.strip().upper()
    for pattern, stmt_type in _FALLBACK_PATTERNS:
        if re.match(pattern, stripped, re.DOTALL):
            return stmt_type
    return None
