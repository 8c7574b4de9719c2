"""Error taxonomy and centralized error rendering with actionable messages."""
from typing import Any

import pymysql


class GovernanceError(Exception):
    """Base class for every failure the request pipeline reports."""

    error_type = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(GovernanceError):
    """Target environment is missing or incompletely configured."""

    error_type = "configuration_error"


class PermissionDeniedError(GovernanceError):
    """Tool category is not permitted under the active tier."""

    error_type = "permission_denied"


class ProductionProtectionError(PermissionDeniedError):
    """Write-shaped operation attempted against a read-only environment."""

    error_type = "production_protection"


class InvalidArgumentError(GovernanceError):
    """Tool arguments failed validation against the tool's input model."""

    error_type = "invalid_argument"


class UnderlyingStatementError(GovernanceError):
    """Wraps any failure raised by the statement-execution layer."""

    error_type = "statement_error"

    def __init__(self, cause: Exception):
        super().__init__(describe_driver_error(cause))
        self.cause = cause


# MySQL server and client error codes with a more helpful rendering
_ACCESS_DENIED = {1044, 1045, 1142, 1143}
_UNKNOWN_DATABASE = 1049
_NO_SUCH_TABLE = 1146
_PARSE_ERROR = 1064
_CANNOT_CONNECT = {2002, 2003, 2005}
_LOST_CONNECTION = {2006, 2013}


def describe_driver_error(e: Exception) -> str:
    """Return a human-readable, actionable message for a driver exception.

    Distinguishes between:
    - Authentication / privilege failures
    - Missing database or table
    - SQL syntax errors
    - Connectivity problems (refused or dropped connections)
    """
    if isinstance(e, pymysql.err.MySQLError) and e.args and isinstance(e.args[0], int):
        code = e.args[0]
        detail = str(e.args[1]) if len(e.args) > 1 else ""

        if code in _ACCESS_DENIED:
            return (
                f"Access denied by the MySQL server ({detail}). "
                "Check the credentials and grants configured for this environment."
            )
        if code == _UNKNOWN_DATABASE:
            return (
                f"Unknown database ({detail}). "
                "Use list_databases to discover available databases."
            )
        if code == _NO_SUCH_TABLE:
            return (
                f"Table does not exist ({detail}). "
                "Use list_tables to discover tables in the current database."
            )
        if code == _PARSE_ERROR:
            return f"SQL syntax error: {detail}. Check your query and try again."
        if code in _CANNOT_CONNECT:
            return (
                f"Cannot connect to MySQL ({detail}). Possible causes:\n"
                "- The database host is down or unreachable\n"
                "- The port or host configured for this environment is wrong\n"
                "Use switch_environment to reconnect once the server is reachable."
            )
        if code in _LOST_CONNECTION:
            return (
                f"Lost connection to MySQL ({detail}). "
                "The next call will open a new connection."
            )
        return f"MySQL error {code}: {detail}"

    if isinstance(e, ConnectionError):
        return f"Connection failed: {e}"

    return f"{type(e).__name__}: {e}"


def handle_error(e: Exception) -> dict[str, Any]:
    """Render any exception as a structured error payload."""
    if not isinstance(e, GovernanceError):
        e = UnderlyingStatementError(e)
    return {
        "status": "error",
        "error_type": e.error_type,
        "message": e.message,
    }
