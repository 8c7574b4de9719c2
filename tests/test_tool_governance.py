"""Test tier-based tool permissions across the whole tool catalog.

Covers the category decision table, unknown tools, the composed
PermissionDecision and the advertised tool list per tier.
"""
import pytest
from mysql_mcp.governance.tool_guard import (
    TOOL_CATALOG,
    PermissionDecision,
    PermissionTier,
    ToolCategory,
    decide,
    is_allowed,
    lookup_tool,
    needs_confirmation,
    visible_tools,
)


WRITE_TOOLS = sorted(
    name for name, t in TOOL_CATALOG.items() if t.category == ToolCategory.WRITE_OPERATION
)
READ_TOOLS = sorted(
    name for name, t in TOOL_CATALOG.items() if t.category == ToolCategory.READ_ONLY
)


# ── Catalog ───────────────────────────────────────────────────────────

class TestToolCatalog:

    def test_total_tools(self):
        assert len(TOOL_CATALOG) == 14

    def test_write_tools(self):
        assert WRITE_TOOLS == ["delete_data", "execute_query", "insert_data", "update_data"]

    def test_write_tools_require_confirmation(self):
        assert all(TOOL_CATALOG[name].requires_confirmation for name in WRITE_TOOLS)

    def test_read_tools_never_require_confirmation(self):
        assert not any(TOOL_CATALOG[name].requires_confirmation for name in READ_TOOLS)

    def test_switch_environment_is_administrative(self):
        assert lookup_tool("switch_environment").category == ToolCategory.ADMINISTRATIVE

    def test_statement_tools(self):
        inspecting = {n for n, t in TOOL_CATALOG.items() if t.inspects_statement}
        assert inspecting == {"select_query", "execute_query"}

    def test_catalog_is_immutable(self):
        with pytest.raises(TypeError):
            TOOL_CATALOG["drop_everything"] = TOOL_CATALOG["select_query"]


# ── Decision table ────────────────────────────────────────────────────

class TestIsAllowed:

    @pytest.mark.parametrize("tier", list(PermissionTier))
    @pytest.mark.parametrize("name", READ_TOOLS + ["switch_environment"])
    def test_read_and_admin_allowed_everywhere(self, tier, name):
        assert is_allowed(lookup_tool(name), tier) is True

    @pytest.mark.parametrize("name", WRITE_TOOLS)
    def test_writes_blocked_under_read_only(self, name):
        assert is_allowed(lookup_tool(name), PermissionTier.READ_ONLY) is False

    @pytest.mark.parametrize("tier", [PermissionTier.FULL_ACCESS, PermissionTier.CONFIRM_REQUIRED])
    @pytest.mark.parametrize("name", WRITE_TOOLS)
    def test_writes_allowed_elsewhere(self, tier, name):
        assert is_allowed(lookup_tool(name), tier) is True

    @pytest.mark.parametrize("tier", list(PermissionTier))
    def test_unknown_tool_never_allowed(self, tier):
        assert lookup_tool("drop_database") is None
        assert is_allowed(None, tier) is False


class TestDecide:

    def test_read_only_blocks_insert(self):
        tool = lookup_tool("insert_data")
        assert decide(tool, PermissionTier.READ_ONLY, confirm=True) == PermissionDecision.BLOCKED

    def test_confirm_tier_without_flag(self):
        tool = lookup_tool("delete_data")
        assert decide(tool, PermissionTier.CONFIRM_REQUIRED) == PermissionDecision.NEEDS_CONFIRMATION

    def test_confirm_tier_with_flag(self):
        tool = lookup_tool("delete_data")
        assert decide(tool, PermissionTier.CONFIRM_REQUIRED, confirm=True) == PermissionDecision.ALLOWED

    def test_full_access_ignores_confirmation_flag(self):
        tool = lookup_tool("delete_data")
        assert needs_confirmation(tool, PermissionTier.FULL_ACCESS) is False
        assert decide(tool, PermissionTier.FULL_ACCESS) == PermissionDecision.ALLOWED

    def test_read_tool_under_confirm_tier(self):
        tool = lookup_tool("select_query")
        assert decide(tool, PermissionTier.CONFIRM_REQUIRED) == PermissionDecision.ALLOWED

    def test_unknown_tool_blocked(self):
        assert decide(None, PermissionTier.FULL_ACCESS) == PermissionDecision.BLOCKED


class TestVisibleTools:

    def test_read_only_hides_writes(self):
        names = visible_tools(PermissionTier.READ_ONLY)
        assert "switch_environment" in names
        assert "select_query" in names
        assert not set(WRITE_TOOLS) & set(names)

    def test_full_access_shows_everything(self):
        assert set(visible_tools(PermissionTier.FULL_ACCESS)) == set(TOOL_CATALOG)
