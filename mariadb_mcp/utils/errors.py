"""Gateway error kinds and centralized error messages.

Every failure that reaches a tool handler is one of the ``GatewayError``
subclasses below. ``handle_error`` turns any of them (and raw driver errors
that slipped through) into an actionable, human-readable message.
"""
import pymysql
from pymysql.constants import ER


class GatewayError(Exception):
    """Base class for all errors raised by the statement gateway."""


class ConfigError(GatewayError):
    """Missing or invalid startup configuration. Fatal at startup."""


class PolicyViolation(GatewayError):
    """Statement denied by the SQL policy engine."""


class MissingParameter(GatewayError):
    """A required argument is absent (table name, resolvable database, SQL)."""


class DatabaseConnectionError(GatewayError, ConnectionError):
    """Pool exhaustion, connect timeout or transport failure."""


class QueryTimeout(GatewayError, TimeoutError):
    """Statement exceeded its execution budget."""


class UpstreamError(GatewayError):
    """The server rejected or failed the statement for non-policy reasons."""

    def __init__(self, message: str, errno: int = None):
        super().__init__(message)
        self.errno = errno


class DatabaseSwitchError(UpstreamError):
    """Switching the connection to the requested database failed."""


def _driver_message(e: pymysql.err.MySQLError) -> str:
    if len(e.args) >= 2:
        return f"({e.args[0]}) {e.args[1]}"
    return str(e)


def handle_error(e: Exception) -> str:
    """Return a human-readable, actionable error message.

    The message never carries an ``Error:`` prefix; the MCP layer marks the
    result as an error on its own.
    """
    if isinstance(e, PolicyViolation):
        return (
            f"Query not permitted: {e}. Only SELECT, SHOW, DESCRIBE and EXPLAIN "
            "statements run by default; INSERT, UPDATE and DELETE need "
            "MARIADB_ALLOW_INSERT / MARIADB_ALLOW_UPDATE / MARIADB_ALLOW_DELETE."
        )

    if isinstance(e, MissingParameter):
        return f"Missing parameter: {e}"

    if isinstance(e, QueryTimeout):
        return (
            f"Query timed out: {e}. Try limiting rows with LIMIT or simplifying "
            "the query."
        )

    if isinstance(e, DatabaseConnectionError):
        return (
            f"Cannot reach the database server: {e}. Check MARIADB_HOST / "
            "MARIADB_PORT and that the server is accepting connections, then retry."
        )

    if isinstance(e, DatabaseSwitchError):
        return (
            f"Cannot use database: {e}. Use list_databases to discover "
            "available databases."
        )

    if isinstance(e, UpstreamError):
        if e.errno == ER.NO_SUCH_TABLE:
            return (
                f"{e}. Use list_tables to discover available tables."
            )
        if e.errno == ER.PARSE_ERROR:
            return f"SQL syntax error: {e}. Check your query and try again."
        return f"Database error: {e}"

    if isinstance(e, ConfigError):
        return f"Configuration error: {e}"

    if isinstance(e, pymysql.err.MySQLError):
        return f"Database error: {_driver_message(e)}"

    return f"{type(e).__name__}: {e}"
