"""Database and table discovery tools."""
import logging
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from mariadb_mcp.gateway import Gateway
from mariadb_mcp.utils.errors import handle_error
from mariadb_mcp.utils.formatting import ResponseFormat, format_query_results

logger = logging.getLogger(__name__)


class ListDatabasesInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


class ListTablesInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    database: Optional[str] = Field(
        default=None,
        description="Database name (optional, uses the default database if not specified)",
    )
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


class DescribeTableInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    database: Optional[str] = Field(
        default=None,
        description="Database name (optional, uses the default database if not specified)",
    )
    table: str = Field(..., description="Table name", min_length=1, max_length=64)
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


def register_schema_tools(mcp: FastMCP, gateway: Gateway):

    @mcp.tool(
        name="list_databases",
        annotations={
            "title": "List Databases",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def list_databases(params: ListDatabasesInput) -> str:
        """List all databases accessible to the configured MariaDB/MySQL user."""
        try:
            result = await gateway.list_databases()
            return format_query_results(result, fmt=params.response_format)
        except Exception as e:
            logger.error(f"list_databases failed: {e}")
            raise ToolError(handle_error(e)) from e

    @mcp.tool(
        name="list_tables",
        annotations={
            "title": "List Tables in Database",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def list_tables(params: ListTablesInput) -> str:
        """List all tables and views in a database with their type
        (BASE TABLE / VIEW). Uses the default database when none is given."""
        try:
            result = await gateway.list_tables(database=params.database)
            return format_query_results(result, fmt=params.response_format)
        except Exception as e:
            logger.error(f"list_tables failed: {e}")
            raise ToolError(handle_error(e)) from e

    @mcp.tool(
        name="describe_table",
        annotations={
            "title": "Describe Table Schema",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def describe_table(params: DescribeTableInput) -> str:
        """Show the schema of a table: column names, types, nullability,
        keys, defaults and extra attributes. Essential for writing queries."""
        try:
            result = await gateway.describe_table(params.table, database=params.database)
            return format_query_results(result, fmt=params.response_format)
        except Exception as e:
            logger.error(f"describe_table failed: {e}")
            raise ToolError(handle_error(e)) from e
