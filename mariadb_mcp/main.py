"""MariaDB MCP Server: main entry point.

4 tools (list_databases, list_tables, describe_table, execute_query) over
stdio, every statement routed through the SQL policy gateway.
"""
import sys
import logging
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from mariadb_mcp.config import MariaDBConfig
from mariadb_mcp.db import PoolManager
from mariadb_mcp.executor import QueryExecutor
from mariadb_mcp.gateway import Gateway
from mariadb_mcp.tools.query import register_query_tools
from mariadb_mcp.tools.schema import register_schema_tools
from mariadb_mcp.utils.errors import ConfigError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_server(config: MariaDBConfig) -> FastMCP:
    """Wire pools, executor and gateway into a FastMCP server."""
    pool_manager = PoolManager()
    gateway = Gateway(config, QueryExecutor(pool_manager))

    @asynccontextmanager
    async def app_lifespan(server: FastMCP):
        """Tear down connection pools on shutdown."""
        logger.info("MariaDB MCP Server started")
        try:
            yield {"gateway": gateway}
        finally:
            await pool_manager.close()
            logger.info("MariaDB MCP Server stopped")

    mcp = FastMCP("mariadb_mcp", lifespan=app_lifespan)
    register_schema_tools(mcp, gateway)
    register_query_tools(mcp, gateway)
    return mcp


def main():
    try:
        config = MariaDBConfig.from_env()
    except ConfigError as e:
        logger.critical(f"Failed to load configuration: {e}")
        sys.exit(1)

    logger.info(
        f"MariaDB configuration: host={config.host} port={config.port} "
        f"user={config.user} database={config.database or '(default not set)'}"
    )
    mcp = create_server(config)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
