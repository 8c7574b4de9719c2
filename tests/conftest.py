"""Shared test fixtures for MySQL MCP tests."""
import pytest
from unittest.mock import MagicMock
from mcp.server.fastmcp import FastMCP

from mysql_mcp.db import ConnectionParams, MySQLSession, StatementResult
from mysql_mcp.environments import Environment, EnvironmentRegistry
from mysql_mcp.governance.pipeline import ToolPipeline
from mysql_mcp.governance.tool_guard import PermissionTier
from mysql_mcp.tools.data import register_data_tools
from mysql_mcp.tools.environment import register_environment_tools
from mysql_mcp.tools.query import register_query_tools
from mysql_mcp.tools.schema import register_schema_tools


def _env(name: str, tier: PermissionTier, host: str = None, user: str = "app") -> Environment:
    return Environment(
        name=name,
        display_name=name.title(),
        connection=ConnectionParams(
            host=f"{name}-db.internal" if host is None else host,
            port=3306,
            user=user,
            password="secret",
            database="app",
        ),
        tier=tier,
        description=f"{name} test environment",
    )


@pytest.fixture
def environments():
    return {
        "local": _env("local", PermissionTier.FULL_ACCESS),
        "staging": _env("staging", PermissionTier.CONFIRM_REQUIRED),
        "preproduction": _env("preproduction", PermissionTier.READ_ONLY),
        "production": _env("production", PermissionTier.READ_ONLY),
        "broken": _env("broken", PermissionTier.FULL_ACCESS, host=""),
        "nouser": _env("nouser", PermissionTier.FULL_ACCESS, user=""),
    }


@pytest.fixture
def mock_session():
    """Mock statement layer; async methods become AsyncMocks through spec=MySQLSession."""
    mock = MagicMock(spec=MySQLSession)
    mock.query.return_value = StatementResult()
    mock.execute.return_value = StatementResult(affected_rows=1)
    return mock


@pytest.fixture
def registry(environments, mock_session):
    return EnvironmentRegistry(environments, mock_session, active="local")


@pytest.fixture
def pipeline(registry):
    """Pipeline with every tool module registered on a throwaway server."""
    pipeline = ToolPipeline(registry)
    mcp = FastMCP("test")
    register_environment_tools(mcp, pipeline)
    register_schema_tools(mcp, pipeline)
    register_query_tools(mcp, pipeline)
    register_data_tools(mcp, pipeline)
    return pipeline


@pytest.fixture
def sample_describe_rows():
    return [
        {"Field": "id", "Type": "int", "Null": "NO", "Key": "PRI", "Default": None, "Extra": "auto_increment"},
        {"Field": "name", "Type": "varchar(100)", "Null": "YES", "Key": "", "Default": None, "Extra": ""},
        {"Field": "home_phone", "Type": "varchar(20)", "Null": "YES", "Key": "", "Default": None, "Extra": ""},
    ]


@pytest.fixture
def sample_rows():
    return [
        {"id": 1, "name": "Alice", "email": "alice@example.com", "ssn": "123-45-6789"},
        {"id": 2, "name": "Bob", "email": "bob@example.com", "ssn": None},
    ]
