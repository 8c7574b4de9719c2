"""Environment status resource: configured environments and the active one."""
import json
from mcp.server.fastmcp import FastMCP
from mysql_mcp.environments import EnvironmentRegistry


def environment_status(registry: EnvironmentRegistry) -> dict:
    return {
        "active": registry.get_active().name,
        "security_status": registry.security_filter.security_status(),
        "environments": [registry.describe(name) for name in registry.environments],
    }


def register_environment_resources(mcp: FastMCP, registry: EnvironmentRegistry):

    @mcp.resource("environment://status")
    async def get_environment_status() -> str:
        """Configured environments with host, permission tier and active flag."""
        return json.dumps(environment_status(registry), indent=2, default=str)
