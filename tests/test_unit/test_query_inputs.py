"""Unit tests for query tool inputs."""
import pytest
from mysql_mcp.tools.query import ExecuteQueryInput, SelectQueryInput
from mysql_mcp.utils.formatting import ResponseFormat


class TestSelectQueryInput:
    def test_default_limit(self):
        assert SelectQueryInput(query="SELECT 1").limit == 100

    def test_whitespace_stripped(self):
        assert SelectQueryInput(query="  SELECT 1  ").query == "SELECT 1"

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            SelectQueryInput(query="SELECT 1", limit=0)

    def test_empty_query_rejected(self):
        with pytest.raises(ValueError):
            SelectQueryInput(query="")


class TestExecuteQueryInput:
    def test_defaults(self):
        params = ExecuteQueryInput(query="UPDATE t SET a = 1")
        assert params.confirm is None
        assert params.response_format == ResponseFormat.JSON

    def test_markdown_format(self):
        params = ExecuteQueryInput(query="SELECT 1", response_format="markdown")
        assert params.response_format == ResponseFormat.MARKDOWN
