"""Statement execution with policy enforcement, timeout and row cap."""
import logging
import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional

import pymysql
from pymysql.constants import FIELD_TYPE

from mariadb_mcp.config import MariaDBConfig
from mariadb_mcp.db import Lease, PoolManager
from mariadb_mcp.governance.policy import GovernancePolicy
from mariadb_mcp.utils.errors import (
    DatabaseConnectionError,
    DatabaseSwitchError,
    QueryTimeout,
    UpstreamError,
)

logger = logging.getLogger(__name__)

# CHAR and INTERVAL alias TINY and ENUM.
_FIELD_TYPE_NAMES: dict[int, str] = {
    code: name
    for name, code in vars(FIELD_TYPE).items()
    if name.isupper() and name not in ("CHAR", "INTERVAL")
}


@dataclass(frozen=True)
class StatementRequest:
    sql: str
    database: Optional[str] = None


@dataclass(frozen=True)
class QueryResult:
    """Rows (capped at the row limit), column metadata and truncation flag."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    fields: list[dict[str, Any]] = field(default_factory=list)
    truncated: bool = False

    def to_dict(self) -> dict:
        return {
            "rows": self.rows,
            "fields": self.fields,
            "row_count": len(self.rows),
            "truncated": self.truncated,
        }


def cap_rows_with_metadata(rows: list, max_rows: int) -> tuple[list, bool]:
    """Return capped rows along with a truncation flag."""
    if max_rows and len(rows) > max_rows:
        return rows[:max_rows], True
    return rows, False


def fields_from_description(description) -> list[dict[str, Any]]:
    """Build column metadata from DB-API cursor description tuples."""
    fields = []
    for entry in description or []:
        name, type_code = entry[0], entry[1]
        null_ok = entry[6] if len(entry) > 6 else None
        fields.append(
            {
                "name": name,
                "type": _FIELD_TYPE_NAMES.get(type_code, str(type_code)),
                "nullable": null_ok,
            }
        )
    return fields


def _is_transport_error(e: Exception) -> bool:
    """Client-side errors (CR_* codes 2000-2999) mean the link itself failed."""
    if isinstance(e, (OSError, pymysql.err.InterfaceError)):
        return True
    if isinstance(e, pymysql.err.OperationalError) and e.args:
        code = e.args[0]
        return isinstance(code, int) and 2000 <= code < 3000
    return False


def _errno(e: pymysql.err.MySQLError) -> Optional[int]:
    if e.args and isinstance(e.args[0], int):
        return e.args[0]
    return None


def _message(e: Exception) -> str:
    if isinstance(e, pymysql.err.MySQLError) and len(e.args) >= 2:
        return str(e.args[1])
    return str(e)


class QueryExecutor:
    """Runs one statement per lease: switch database, enforce policy, execute."""

    def __init__(self, pool_manager: PoolManager):
        self._pools = pool_manager

    async def execute(
        self,
        config: MariaDBConfig,
        request: StatementRequest,
        policy: GovernancePolicy = None,
    ) -> QueryResult:
        """Execute ``request`` against ``config``'s server.

        Raises DatabaseConnectionError, DatabaseSwitchError, PolicyViolation,
        QueryTimeout or UpstreamError. Nothing is retried.
        """
        if policy is None:
            policy = GovernancePolicy(permissions=config.permissions)
        database = request.database or config.database

        async with self._pools.connection(config) as lease:
            if database:
                await self._switch_database(lease, database)
            policy.enforce(request.sql)
            if config.debug_sql:
                logger.info(f"[SQL] {request.sql}")
            else:
                logger.debug(f"[SQL] {request.sql}")
            result = await self._run(config, lease, request.sql)

        logger.info(
            f"Query returned {len(result.rows)} row(s)"
            + (" (truncated)" if result.truncated else "")
        )
        return result

    async def _switch_database(self, lease: Lease, database: str):
        try:
            await lease.connection.select_db(database)
        except (pymysql.err.MySQLError, OSError) as e:
            if _is_transport_error(e):
                lease.invalidate()
                raise DatabaseConnectionError(f"Lost connection while selecting {database}: {e}") from e
            raise DatabaseSwitchError(f"'{database}': {_message(e)}", errno=_errno(e)) from e

    async def _run(self, config: MariaDBConfig, lease: Lease, sql: str) -> QueryResult:
        async def _fetch() -> QueryResult:
            async with lease.connection.cursor() as cur:
                await cur.execute(sql)
                if not cur.description:
                    return QueryResult(
                        rows=[{"affected_rows": cur.rowcount, "insert_id": cur.lastrowid}]
                    )
                rows = await cur.fetchall()
                capped, truncated = cap_rows_with_metadata(list(rows), config.row_limit)
                return QueryResult(
                    rows=capped,
                    fields=fields_from_description(cur.description),
                    truncated=truncated,
                )

        statement = asyncio.create_task(
            asyncio.wait_for(_fetch(), timeout=config.query_timeout)
        )
        try:
            return await asyncio.shield(statement)
        except asyncio.CancelledError:
            # The statement keeps its own timeout; the lease is discarded after.
            await self._drain(statement)
            raise
        except asyncio.TimeoutError as e:
            lease.invalidate()
            logger.warning(f"Statement exceeded {config.query_timeout_ms} ms; discarding connection")
            raise QueryTimeout(f"statement exceeded {config.query_timeout_ms} ms") from e
        except (pymysql.err.MySQLError, OSError) as e:
            if _is_transport_error(e):
                lease.invalidate()
                logger.error(f"Connection failed during statement: {e}")
                raise DatabaseConnectionError(f"Connection lost during statement: {e}") from e
            logger.error(f"Query execution failed: {e}")
            raise UpstreamError(_message(e), errno=_errno(e)) from e

    @staticmethod
    async def _drain(statement: asyncio.Task):
        """Wait for a statement whose caller was cancelled."""
        logger.warning("Request cancelled; waiting for the in-flight statement")
        try:
            await asyncio.wait([statement])
        except asyncio.CancelledError:
            statement.cancel()
            raise
        if not statement.cancelled() and statement.exception() is not None:
            logger.warning(f"Statement failed after cancellation: {statement.exception()!r}")
