"""SQL query execution tool with safety controls.

Statements are checked by the lexical SQL policy before they reach the
server; write verbs need the matching MARIADB_ALLOW_* flag.
"""
import logging
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from mariadb_mcp.gateway import Gateway
from mariadb_mcp.utils.errors import handle_error
from mariadb_mcp.utils.formatting import ResponseFormat, format_query_results

logger = logging.getLogger(__name__)


class ExecuteQueryInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    query: str = Field(
        ...,
        description=(
            "SQL query (SELECT, SHOW, DESCRIBE and EXPLAIN; INSERT, UPDATE and "
            "DELETE only when enabled)"
        ),
        min_length=1,
        max_length=50000,
    )
    database: Optional[str] = Field(
        default=None,
        description="Database name (optional, uses the default database if not specified)",
    )
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


def register_query_tools(mcp: FastMCP, gateway: Gateway):
    permissions = gateway.config.permissions

    @mcp.tool(
        name="execute_query",
        annotations={
            "title": "Execute SQL Query",
            "readOnlyHint": not any(permissions.write_verbs().values()),
            "destructiveHint": permissions.allow_delete,
            "idempotentHint": False,
            "openWorldHint": False,
        },
    )
    async def execute_query(params: ExecuteQueryInput) -> str:
        """Execute a SQL statement against the MariaDB/MySQL server.

        Only one statement per call. SELECT, SHOW, DESCRIBE, DESC and EXPLAIN
        are always allowed; INSERT, UPDATE and DELETE only when the server
        enables them. DDL, locking, transaction control and SET are rejected.
        Results are capped at the configured row limit.
        """
        try:
            result = await gateway.run_statement(params.query, database=params.database)
            return format_query_results(result, fmt=params.response_format)
        except Exception as e:
            logger.error(f"execute_query failed: {e}")
            raise ToolError(handle_error(e)) from e
