"""Tool-level access control keyed on the active environment's tier.

Every tool belongs to exactly one category. Whether a category may run is a
pure function of the tier; the confirmation handshake is layered on top by
``confirmation.py``.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class PermissionTier(str, Enum):
    """Permission level assigned to an environment at configuration time."""

    FULL_ACCESS = "full"
    READ_ONLY = "read_only"
    CONFIRM_REQUIRED = "confirm_required"


class ToolCategory(str, Enum):
    READ_ONLY = "read_only"
    WRITE_OPERATION = "write_operation"
    ADMINISTRATIVE = "administrative"


class PermissionDecision(str, Enum):
    ALLOWED = "allowed"
    BLOCKED = "blocked"
    NEEDS_CONFIRMATION = "needs_confirmation"


@dataclass(frozen=True)
class ToolDescriptor:
    """Static description of one tool in the catalog."""

    name: str
    category: ToolCategory
    requires_confirmation: bool = False
    # Tool accepts raw SQL text whose shape is only known at call time
    inspects_statement: bool = False


def _catalog(*tools: ToolDescriptor) -> Mapping[str, ToolDescriptor]:
    return MappingProxyType({t.name: t for t in tools})


TOOL_CATALOG: Mapping[str, ToolDescriptor] = _catalog(
    ToolDescriptor("switch_environment", ToolCategory.ADMINISTRATIVE),
    ToolDescriptor("list_databases", ToolCategory.READ_ONLY),
    ToolDescriptor("use_database", ToolCategory.READ_ONLY),
    ToolDescriptor("list_tables", ToolCategory.READ_ONLY),
    ToolDescriptor("describe_table", ToolCategory.READ_ONLY),
    ToolDescriptor("get_table_indexes", ToolCategory.READ_ONLY),
    ToolDescriptor("get_table_comments", ToolCategory.READ_ONLY),
    ToolDescriptor("get_database_schema", ToolCategory.READ_ONLY),
    ToolDescriptor("analyze_relationships", ToolCategory.READ_ONLY),
    ToolDescriptor("select_query", ToolCategory.READ_ONLY, inspects_statement=True),
    ToolDescriptor(
        "insert_data", ToolCategory.WRITE_OPERATION, requires_confirmation=True
    ),
    ToolDescriptor(
        "update_data", ToolCategory.WRITE_OPERATION, requires_confirmation=True
    ),
    ToolDescriptor(
        "delete_data", ToolCategory.WRITE_OPERATION, requires_confirmation=True
    ),
    ToolDescriptor(
        "execute_query",
        ToolCategory.WRITE_OPERATION,
        requires_confirmation=True,
        inspects_statement=True,
    ),
)

# Categories each tier lets through; administrative tools are always allowed
# so a caller can leave a locked-down environment.
_TIER_CATEGORIES: Mapping[PermissionTier, frozenset[ToolCategory]] = MappingProxyType(
    {
        PermissionTier.READ_ONLY: frozenset(
            {ToolCategory.ADMINISTRATIVE, ToolCategory.READ_ONLY}
        ),
        PermissionTier.CONFIRM_REQUIRED: frozenset(ToolCategory),
        PermissionTier.FULL_ACCESS: frozenset(ToolCategory),
    }
)


def lookup_tool(name: str) -> Optional[ToolDescriptor]:
    return TOOL_CATALOG.get(name)


def is_allowed(tool: Optional[ToolDescriptor], tier: PermissionTier) -> bool:
    """Check whether a tool may run under a tier. Unknown tools never may."""
    if tool is None:
        return False
    return tool.category in _TIER_CATEGORIES.get(tier, frozenset())


def needs_confirmation(tool: ToolDescriptor, tier: PermissionTier) -> bool:
    """Confirmation applies only to flagged tools under the confirm tier."""
    return tier == PermissionTier.CONFIRM_REQUIRED and tool.requires_confirmation


def decide(
    tool: Optional[ToolDescriptor], tier: PermissionTier, confirm: bool = False
) -> PermissionDecision:
    """Combine the tier table with the confirmation handshake."""
    if not is_allowed(tool, tier):
        return PermissionDecision.BLOCKED
    if needs_confirmation(tool, tier) and not confirm:
        return PermissionDecision.NEEDS_CONFIRMATION
    return PermissionDecision.ALLOWED


def visible_tools(tier: PermissionTier) -> list[str]:
    """Tool names to advertise to the caller under a tier."""
    return [name for name, tool in TOOL_CATALOG.items() if is_allowed(tool, tier)]
