"""The four public database operations.

Each one is a fixed or caller-supplied statement routed through the
QueryExecutor, so every statement, including the fixed ones, passes the
same policy check, timeout and row cap.
"""
from typing import Optional

from mariadb_mcp.config import MariaDBConfig
from mariadb_mcp.executor import QueryExecutor, QueryResult, StatementRequest
from mariadb_mcp.governance.policy import build_governance_policy
from mariadb_mcp.utils.errors import MissingParameter
from mariadb_mcp.utils.quoting import quote_identifier


class Gateway:
    def __init__(self, config: MariaDBConfig, executor: QueryExecutor):
        self.config = config
        self._executor = executor
        self._policy = build_governance_policy(config.permissions)

    async def _execute(self, sql: str, database: Optional[str] = None) -> QueryResult:
        request = StatementRequest(sql=sql, database=database)
        return await self._executor.execute(self.config, request, policy=self._policy)

    async def list_databases(self) -> QueryResult:
        return await self._execute("SHOW DATABASES")

    async def list_tables(self, database: Optional[str] = None) -> QueryResult:
        database = database or self.config.database
        if not database:
            raise MissingParameter(
                "database is required (no default MARIADB_DATABASE is configured)"
            )
        return await self._execute("SHOW FULL TABLES", database)

    async def describe_table(
        self, table: Optional[str], database: Optional[str] = None
    ) -> QueryResult:
        """Column definitions of ``table``; the name is always quoted as an identifier."""
        if not table:
            raise MissingParameter("table is required")
        return await self._execute(f"DESCRIBE {quote_identifier(table)}", database)

    async def run_statement(
        self, sql: Optional[str], database: Optional[str] = None
    ) -> QueryResult:
        """Run caller-supplied SQL, subject to the statement policy."""
        if not sql:
            raise MissingParameter("query is required")
        return await self._execute(sql, database)
