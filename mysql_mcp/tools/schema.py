"""Schema and metadata discovery tools."""
from pydantic import BaseModel, Field, ConfigDict
from mcp.server.fastmcp import FastMCP
from mysql_mcp.config import config
from mysql_mcp.db import quote_identifier
from mysql_mcp.governance.pipeline import ToolPipeline
from mysql_mcp.utils.formatting import ResponseFormat, render

_READ_ANNOTATIONS = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": False,
}

TABLE_COMMENTS_SQL = """
    SELECT
        t.TABLE_COMMENT AS table_comment,
        c.COLUMN_NAME AS column_name,
        c.COLUMN_COMMENT AS column_comment
    FROM information_schema.COLUMNS c
    JOIN information_schema.TABLES t
        ON t.TABLE_SCHEMA = c.TABLE_SCHEMA AND t.TABLE_NAME = c.TABLE_NAME
    WHERE c.TABLE_SCHEMA = DATABASE() AND c.TABLE_NAME = %s
    ORDER BY c.ORDINAL_POSITION
"""


class ListDatabasesInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class ListTablesInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class UseDatabaseInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    database: str = Field(..., description="Database name to use", min_length=1)


class DescribeTableInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    table: str = Field(..., description="Table name to describe", min_length=1)
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


class TableInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    table: str = Field(..., description="Table name", min_length=1)


class DisabledToolInput(BaseModel):
    """Accepted and ignored; kept for callers that still send the old options."""

    include_comments: bool = Field(default=False, description="This tool is disabled")
    include_sample_data: bool = Field(default=False, description="This tool is disabled")
    confidence_threshold: float = Field(default=0.7, description="This tool is disabled")


def disabled_tool_payload(tool_name: str) -> dict:
    return {
        "status": "success",
        "disabled": True,
        "message": (
            f"TOOL DISABLED: {tool_name} is disabled for large databases to "
            "prevent crashes. Use the per-table tools instead:\n"
            "- describe_table: Get schema for one table\n"
            "- get_table_indexes: Get indexes for one table\n"
            "- get_table_comments: Get comments for one table\n"
            "- select_query: Query specific data with limits"
        ),
    }


def register_schema_tools(mcp: FastMCP, pipeline: ToolPipeline):
    session = pipeline.registry.session

    async def _list_databases(params: ListDatabasesInput) -> dict:
        result = await session.query("SHOW DATABASES")
        names = [next(iter(row.values())) for row in result.rows]
        return {
            "status": "success",
            "message": "Available databases:\n"
            + "\n".join(f"- {name}" for name in names),
            "databases": names,
        }

    async def _use_database(params: UseDatabaseInput) -> dict:
        await session.use_database(params.database)
        return {
            "status": "success",
            "message": f"Now using database: {params.database}",
            "database": params.database,
        }

    async def _list_tables(params: ListTablesInput) -> dict:
        result = await session.query("SHOW TABLES")
        names = [next(iter(row.values())) for row in result.rows]
        if not names:
            return {
                "status": "success",
                "message": "No tables found in the current database.",
                "tables": [],
                "total": 0,
            }

        cap = config.max_listed_tables
        shown = names[:cap]
        listing = "\n".join(f"- {name}" for name in shown)
        if len(names) > cap:
            message = (
                f"Large database detected ({len(names)} tables). "
                f"Showing first {cap} tables:\n\n{listing}\n\n"
                f"... and {len(names) - cap} more tables.\n\n"
                "Use SELECT queries to find specific tables: SELECT table_name "
                "FROM information_schema.tables WHERE table_name LIKE 'pattern%'"
            )
        else:
            message = f"Tables in database ({len(names)} total):\n{listing}"
        return {
            "status": "success",
            "message": message,
            "tables": shown,
            "total": len(names),
        }

    async def _describe_table(params: DescribeTableInput) -> dict:
        result = await session.query(f"DESCRIBE {quote_identifier(params.table)}")
        schema = [
            {
                "name": row.get("Field"),
                "type": row.get("Type"),
                "nullable": row.get("Null"),
                "key": row.get("Key"),
                "default": row.get("Default"),
                "extra": row.get("Extra"),
            }
            for row in result.rows
        ]
        return {
            "status": "success",
            "message": f"Schema for table '{params.table}':",
            "table": params.table,
            "schema": schema,
        }

    async def _get_table_indexes(params: TableInput) -> dict:
        result = await session.query(f"SHOW INDEX FROM {quote_identifier(params.table)}")
        return {
            "status": "success",
            "message": f"Indexes for table '{params.table}':",
            "table": params.table,
            "indexes": result.rows,
        }

    async def _get_table_comments(params: TableInput) -> dict:
        result = await session.query(TABLE_COMMENTS_SQL, (params.table,))
        table_comment = result.rows[0].get("table_comment") if result.rows else None
        return {
            "status": "success",
            "message": f"Comments for table '{params.table}':",
            "table": params.table,
            "table_comment": table_comment,
            "column_comments": [
                {"column": row.get("column_name"), "comment": row.get("column_comment")}
                for row in result.rows
            ],
        }

    async def _get_database_schema(params: DisabledToolInput) -> dict:
        return disabled_tool_payload("get_database_schema")

    async def _analyze_relationships(params: DisabledToolInput) -> dict:
        return disabled_tool_payload("analyze_relationships")

    pipeline.register("list_databases", ListDatabasesInput, _list_databases)
    pipeline.register("use_database", UseDatabaseInput, _use_database)
    pipeline.register("list_tables", ListTablesInput, _list_tables)
    pipeline.register("describe_table", DescribeTableInput, _describe_table)
    pipeline.register("get_table_indexes", TableInput, _get_table_indexes)
    pipeline.register("get_table_comments", TableInput, _get_table_comments)
    pipeline.register("get_database_schema", DisabledToolInput, _get_database_schema)
    pipeline.register("analyze_relationships", DisabledToolInput, _analyze_relationships)

    @mcp.tool(
        name="list_databases",
        annotations={"title": "List Databases", **_READ_ANNOTATIONS},
    )
    async def list_databases(params: ListDatabasesInput) -> str:
        """List all databases visible to the active environment's user."""
        return render(await pipeline.call("list_databases", params))

    @mcp.tool(
        name="use_database",
        annotations={"title": "Use Database", **_READ_ANNOTATIONS},
    )
    async def use_database(params: UseDatabaseInput) -> str:
        """Switch to a specific database on the current connection.
        The choice is kept until the next environment switch."""
        return render(await pipeline.call("use_database", params))

    @mcp.tool(
        name="list_tables",
        annotations={"title": "List Tables", **_READ_ANNOTATIONS},
    )
    async def list_tables(params: ListTablesInput) -> str:
        """List all tables in the current database (first 100 for large databases)."""
        return render(await pipeline.call("list_tables", params))

    @mcp.tool(
        name="describe_table",
        annotations={"title": "Describe Table Schema", **_READ_ANNOTATIONS},
    )
    async def describe_table(params: DescribeTableInput) -> str:
        """Get the schema of a table: column names, types, nullability, keys,
        defaults. In production, sensitive column types are masked."""
        return render(await pipeline.call("describe_table", params), params.response_format)

    @mcp.tool(
        name="get_table_indexes",
        annotations={"title": "Get Table Indexes", **_READ_ANNOTATIONS},
    )
    async def get_table_indexes(params: TableInput) -> str:
        """Get all indexes for a specific table."""
        return render(await pipeline.call("get_table_indexes", params))

    @mcp.tool(
        name="get_table_comments",
        annotations={"title": "Get Table Comments", **_READ_ANNOTATIONS},
    )
    async def get_table_comments(params: TableInput) -> str:
        """Get the table comment and all column comments for a specific table."""
        return render(await pipeline.call("get_table_comments", params))

    @mcp.tool(
        name="get_database_schema",
        annotations={"title": "Get Database Schema (disabled)", **_READ_ANNOTATIONS},
    )
    async def get_database_schema(params: DisabledToolInput) -> str:
        """DISABLED - This tool is disabled for large databases to prevent crashes."""
        return render(await pipeline.call("get_database_schema", params))

    @mcp.tool(
        name="analyze_relationships",
        annotations={"title": "Analyze Relationships (disabled)", **_READ_ANNOTATIONS},
    )
    async def analyze_relationships(params: DisabledToolInput) -> str:
        """DISABLED - This tool is disabled for large databases to prevent crashes."""
        return render(await pipeline.call("analyze_relationships", params))
