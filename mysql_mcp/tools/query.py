"""SQL query execution tools.

Both tools accept raw SQL, so the pipeline inspects the statement's shape
before execution in addition to the tool-level tier check.
"""
import logging
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from mcp.server.fastmcp import FastMCP
from mysql_mcp.config import config
from mysql_mcp.governance.pipeline import ToolPipeline
from mysql_mcp.governance.sql_guard import apply_row_limit
from mysql_mcp.utils.formatting import ResponseFormat, render

logger = logging.getLogger(__name__)


class SelectQueryInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    query: str = Field(
        ...,
        description="SELECT SQL query to execute",
        min_length=1,
        max_length=50000,
    )
    limit: int = Field(
        default_factory=lambda: config.default_limit,
        description="Limit number of results (default: 100)",
        ge=1,
    )
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


class ExecuteQueryInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    query: str = Field(
        ..., description="SQL query to execute", min_length=1, max_length=50000
    )
    confirm: Optional[bool] = Field(
        default=None,
        description="Set to true to confirm execution where confirmation is required",
    )
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


def register_query_tools(mcp: FastMCP, pipeline: ToolPipeline):
    registry = pipeline.registry
    session = registry.session

    async def _select_query(params: SelectQueryInput) -> dict:
        final_query = apply_row_limit(params.query, params.limit)
        result = await session.query(final_query)
        return {
            "status": "success",
            "message": "Query results:",
            "query": final_query,
            "row_count": len(result.rows),
            "columns": result.columns,
            "rows": result.rows,
        }

    async def _execute_query(params: ExecuteQueryInput) -> dict:
        if registry.security_filter.active:
            logger.warning(
                "execute_query used in production environment. "
                "Consider using specific read-only tools instead."
            )
        result = await session.query(params.query)
        payload = {
            "status": "success",
            "message": "Query executed successfully.",
            "query": params.query,
            "affected_rows": result.affected_rows,
        }
        if result.columns:
            payload["columns"] = result.columns
            payload["rows"] = result.rows
        if result.last_insert_id:
            payload["insert_id"] = result.last_insert_id
        return payload

    pipeline.register("select_query", SelectQueryInput, _select_query)
    pipeline.register("execute_query", ExecuteQueryInput, _execute_query)

    @mcp.tool(
        name="select_query",
        annotations={
            "title": "Execute SELECT Query",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def select_query(params: SelectQueryInput) -> str:
        """Execute a SELECT query and return results.

        A LIMIT (default 100) is appended to single SELECT statements that do
        not already have one. Statements that modify data are refused; use
        execute_query for those. Sensitive fields are masked in production.
        """
        return render(await pipeline.call("select_query", params), params.response_format)

    @mcp.tool(
        name="execute_query",
        annotations={
            "title": "Execute Any SQL Query",
            "readOnlyHint": False,
            "destructiveHint": True,
            "idempotentHint": False,
            "openWorldHint": False,
        },
    )
    async def execute_query(params: ExecuteQueryInput) -> str:
        """Execute any SQL query (USE WITH CAUTION).

        Not available in read-only environments. Where the environment
        requires confirmation, re-run with confirm=true to proceed.
        """
        return render(await pipeline.call("execute_query", params), params.response_format)
