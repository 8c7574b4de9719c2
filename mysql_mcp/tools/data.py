"""Data modification tools: insert, update and delete.

Column names are quoted as identifiers and values are always bound as
parameters. The WHERE clause is passed through as written by the caller.
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Any, Optional
from mcp.server.fastmcp import FastMCP
from mysql_mcp.db import quote_identifier
from mysql_mcp.governance.pipeline import ToolPipeline
from mysql_mcp.utils.formatting import render

_WRITE_ANNOTATIONS = {
    "readOnlyHint": False,
    "destructiveHint": True,
    "idempotentHint": False,
    "openWorldHint": False,
}

_CONFIRM_DESCRIPTION = (
    "Set to true to confirm execution where the environment requires confirmation"
)


class InsertDataInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    table: str = Field(..., description="Table name", min_length=1)
    data: dict[str, Any] = Field(
        ..., description="Data to insert as column/value pairs"
    )
    confirm: Optional[bool] = Field(default=None, description=_CONFIRM_DESCRIPTION)

    @field_validator("data")
    @classmethod
    def validate_not_empty(cls, v: dict) -> dict:
        if not v:
            raise ValueError("data must contain at least one column")
        return v


class UpdateDataInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    table: str = Field(..., description="Table name", min_length=1)
    data: dict[str, Any] = Field(
        ..., description="Data to update as column/value pairs"
    )
    where: str = Field(..., description="WHERE clause condition", min_length=1)
    confirm: Optional[bool] = Field(default=None, description=_CONFIRM_DESCRIPTION)

    @field_validator("data")
    @classmethod
    def validate_not_empty(cls, v: dict) -> dict:
        if not v:
            raise ValueError("data must contain at least one column")
        return v


class DeleteDataInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    table: str = Field(..., description="Table name", min_length=1)
    where: str = Field(..., description="WHERE clause condition", min_length=1)
    confirm: Optional[bool] = Field(default=None, description=_CONFIRM_DESCRIPTION)


def build_insert(table: str, data: dict[str, Any]) -> tuple[str, list[Any]]:
    columns = ", ".join(quote_identifier(col) for col in data)
    placeholders = ", ".join(["%s"] * len(data))
    sql = f"INSERT INTO {quote_identifier(table)} ({columns}) VALUES ({placeholders})"
    return sql, list(data.values())


def build_update(table: str, data: dict[str, Any], where: str) -> tuple[str, list[Any]]:
    set_clause = ", ".join(f"{quote_identifier(col)} = %s" for col in data)
    sql = f"UPDATE {quote_identifier(table)} SET {set_clause} WHERE {where}"
    return sql, list(data.values())


def build_delete(table: str, where: str) -> str:
    return f"DELETE FROM {quote_identifier(table)} WHERE {where}"


def register_data_tools(mcp: FastMCP, pipeline: ToolPipeline):
    session = pipeline.registry.session

    async def _insert_data(params: InsertDataInput) -> dict:
        sql, values = build_insert(params.table, params.data)
        result = await session.execute(sql, values)
        return {
            "status": "success",
            "message": (
                f"Successfully inserted data into '{params.table}'. "
                f"Insert ID: {result.last_insert_id}, "
                f"Affected rows: {result.affected_rows}"
            ),
            "insert_id": result.last_insert_id,
            "affected_rows": result.affected_rows,
        }

    async def _update_data(params: UpdateDataInput) -> dict:
        sql, values = build_update(params.table, params.data, params.where)
        result = await session.execute(sql, values)
        return {
            "status": "success",
            "message": (
                f"Successfully updated '{params.table}'. "
                f"Affected rows: {result.affected_rows}"
            ),
            "affected_rows": result.affected_rows,
        }

    async def _delete_data(params: DeleteDataInput) -> dict:
        result = await session.execute(build_delete(params.table, params.where))
        return {
            "status": "success",
            "message": (
                f"Successfully deleted from '{params.table}'. "
                f"Affected rows: {result.affected_rows}"
            ),
            "affected_rows": result.affected_rows,
        }

    pipeline.register("insert_data", InsertDataInput, _insert_data)
    pipeline.register("update_data", UpdateDataInput, _update_data)
    pipeline.register("delete_data", DeleteDataInput, _delete_data)

    @mcp.tool(
        name="insert_data",
        annotations={"title": "Insert Data", **_WRITE_ANNOTATIONS},
    )
    async def insert_data(params: InsertDataInput) -> str:
        """Insert a row into a table.
        Blocked in read-only environments; requires confirm=true where the
        environment asks for confirmation."""
        return render(await pipeline.call("insert_data", params))

    @mcp.tool(
        name="update_data",
        annotations={"title": "Update Data", **_WRITE_ANNOTATIONS},
    )
    async def update_data(params: UpdateDataInput) -> str:
        """Update rows in a table matching a WHERE condition.
        Blocked in read-only environments; requires confirm=true where the
        environment asks for confirmation."""
        return render(await pipeline.call("update_data", params))

    @mcp.tool(
        name="delete_data",
        annotations={"title": "Delete Data", **_WRITE_ANNOTATIONS},
    )
    async def delete_data(params: DeleteDataInput) -> str:
        """Delete rows from a table matching a WHERE condition.
        Blocked in read-only environments; requires confirm=true where the
        environment asks for confirmation."""
        return render(await pipeline.call("delete_data", params))
