"""Environment switching tool."""
from pydantic import BaseModel, Field, ConfigDict
from mcp.server.fastmcp import FastMCP
from mysql_mcp.governance.pipeline import ToolPipeline
from mysql_mcp.utils.formatting import render


class SwitchEnvironmentInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    environment: str = Field(
        ...,
        description="The environment to switch to (e.g. local, staging, preproduction, production)",
        min_length=1,
    )


def register_environment_tools(mcp: FastMCP, pipeline: ToolPipeline):
    registry = pipeline.registry

    async def _switch_environment(params: SwitchEnvironmentInput) -> dict:
        result = await registry.switch_to(params.environment)
        env = result.environment
        return {
            "status": "success",
            "message": (
                f"Switched to {env.display_name} environment "
                f"(host: {env.connection.host}).\n{result.security_status}"
            ),
            "security_status": result.security_status,
            "environment": registry.describe(env.name),
        }

    pipeline.register("switch_environment", SwitchEnvironmentInput, _switch_environment)

    @mcp.tool(
        name="switch_environment",
        annotations={
            "title": "Switch Database Environment",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def switch_environment(params: SwitchEnvironmentInput) -> str:
        """Switch the active database environment.

        Closes the current connection and connects to the target environment.
        The target's permission tier then governs every later call: read-only
        environments block writes, confirmation environments require
        confirm=true on data-modifying tools. Production masks sensitive data.
        See the environment://status resource for the configured environments."""
        return render(await pipeline.call("switch_environment", params))
