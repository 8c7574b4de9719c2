"""MySQL Environment MCP Server: main entry point.

Environment-aware MySQL access: 14 tools, 1 resource, tier-based
permissions, confirmation handshake, production-only data masking.
"""
import logging
from contextlib import asynccontextmanager
from mcp.server.fastmcp import FastMCP
from mysql_mcp.config import config
from mysql_mcp.db import MySQLSession
from mysql_mcp.environments import EnvironmentRegistry, load_environments
from mysql_mcp.governance.pipeline import ToolPipeline

logging.basicConfig(level=config.log_level)
logger = logging.getLogger(__name__)

# One connection per process, bound to the active environment
session = MySQLSession()
registry = EnvironmentRegistry(
    load_environments(config),
    session,
    active=config.default_environment,
    production_label=config.production_environment,
)
pipeline = ToolPipeline(registry)


@asynccontextmanager
async def app_lifespan(server: FastMCP):
    """Connect to the default environment and tear the connection down on exit."""
    env = registry.get_active()
    try:
        await session.connect()
        logger.info(
            f"MySQL MCP Server started ({env.display_name}, {env.tier.value}, "
            f"{registry.security_filter.security_status()})"
        )
    except Exception as e:
        logger.warning(
            f"Initial connection to {env.name} failed "
            f"(tools will connect on first call): {e}"
        )

    yield {"registry": registry}

    await session.close()
    logger.info("MySQL MCP Server stopped")


mcp = FastMCP(
    "mysql_mcp",
    lifespan=app_lifespan,
    host="0.0.0.0",
    port=config.port,
)

# Register all tool modules
from mysql_mcp.tools.environment import register_environment_tools
from mysql_mcp.tools.schema import register_schema_tools
from mysql_mcp.tools.query import register_query_tools
from mysql_mcp.tools.data import register_data_tools
from mysql_mcp.resources.environments import register_environment_resources

register_environment_tools(mcp, pipeline)
register_schema_tools(mcp, pipeline)
register_query_tools(mcp, pipeline)
register_data_tools(mcp, pipeline)
register_environment_resources(mcp, registry)


def _apply_tool_visibility(mcp_instance: FastMCP):
    """Advertise only the tools the active environment's tier permits.

    Wraps ToolManager.list_tools. Calls to hidden tools are still rejected by
    the pipeline, so a stale client-side listing cannot bypass the tier.
    """
    original_list_tools = mcp_instance._tool_manager.list_tools

    def governed_list_tools():
        visible = set(pipeline.visible_tools())
        return [tool for tool in original_list_tools() if tool.name in visible]

    mcp_instance._tool_manager.list_tools = governed_list_tools
    logger.info(
        f"Tool visibility: {len(pipeline.visible_tools())} tools advertised "
        f"in {registry.get_active().name}"
    )


_apply_tool_visibility(mcp)


def main():
    mcp.run(transport=config.transport)


if __name__ == "__main__":
    main()
