"""Request pipeline: every tool call passes through the same ordered checks.

ToolLookup -> ArgumentValidation -> TierCheck -> ConfirmationCheck ->
ShapeGuard -> Execute -> Redact -> Respond

Any stage before Execute that fails aborts the call without touching the
database. Execute failures are wrapped in ``UnderlyingStatementError``. The
caller always receives a structured payload whose ``status`` is one of
``success``, ``confirmation_required`` or ``error``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ValidationError

from mysql_mcp.environments import Environment, EnvironmentRegistry
from mysql_mcp.governance.confirmation import request_confirmation
from mysql_mcp.governance.sql_guard import is_write, leading_keyword
from mysql_mcp.governance.tool_guard import (
    PermissionDecision,
    PermissionTier,
    ToolCategory,
    ToolDescriptor,
    decide,
    lookup_tool,
    visible_tools,
)
from mysql_mcp.utils.errors import (
    GovernanceError,
    InvalidArgumentError,
    PermissionDeniedError,
    ProductionProtectionError,
    UnderlyingStatementError,
    handle_error,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[dict[str, Any]]]

SENSITIVE_ROWS_NOTE = (
    "Sensitive data has been masked for security in production environment."
)


@dataclass(frozen=True)
class _Registration:
    input_model: type[BaseModel]
    handler: Handler


class ToolPipeline:
    """Runs registered tool handlers behind the environment's access rules."""

    def __init__(self, registry: EnvironmentRegistry):
        self._registry = registry
        self._tools: dict[str, _Registration] = {}

    @property
    def registry(self) -> EnvironmentRegistry:
        return self._registry

    def register(self, name: str, input_model: type[BaseModel], handler: Handler):
        if lookup_tool(name) is None:
            raise ValueError(f"Tool '{name}' is not in the tool catalog")
        self._tools[name] = _Registration(input_model, handler)

    def visible_tools(self) -> list[str]:
        """Registered tools the active tier permits."""
        tier = self._registry.get_active().tier
        return [name for name in visible_tools(tier) if name in self._tools]

    async def call(
        self, name: str, arguments: Union[BaseModel, dict[str, Any], None] = None
    ) -> dict[str, Any]:
        try:
            return await self._run(name, arguments)
        except GovernanceError as e:
            logger.warning(f"Tool '{name}' rejected ({e.error_type}): {e.message}")
            return handle_error(e)
        except Exception as e:
            logger.exception(f"Unexpected failure in tool '{name}'")
            return handle_error(e)

    async def _run(self, name: str, arguments) -> dict[str, Any]:
        # ToolLookup
        tool = lookup_tool(name)
        registration = self._tools.get(name)
        if tool is None or registration is None:
            raise PermissionDeniedError(f"Unknown tool: {name}")

        # ArgumentValidation
        params = self._validate(name, registration.input_model, arguments)

        # TierCheck and ConfirmationCheck share one decision
        env = self._registry.get_active()
        decision = decide(tool, env.tier, bool(getattr(params, "confirm", None)))
        if decision == PermissionDecision.BLOCKED:
            self._reject(tool, env)
        if decision == PermissionDecision.NEEDS_CONFIRMATION:
            return request_confirmation(tool, env.display_name).to_dict()

        # ShapeGuard
        if tool.inspects_statement:
            self._check_shape(tool, env, getattr(params, "query", ""))

        # Execute
        try:
            payload = await registration.handler(params)
        except GovernanceError:
            raise
        except Exception as e:
            logger.error(f"Tool '{name}' failed in {env.name}: {type(e).__name__}: {e}")
            raise UnderlyingStatementError(e) from e

        # Redact, against whichever environment is active after execution
        return self._redact(payload)

    def _validate(
        self, name: str, model: type[BaseModel], arguments
    ) -> BaseModel:
        if isinstance(arguments, model):
            return arguments
        try:
            return model.model_validate(arguments or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidArgumentError(f"Invalid arguments for '{name}': {problems}")

    def _reject(self, tool: ToolDescriptor, env: Environment):
        if env.tier == PermissionTier.READ_ONLY and (
            tool.category == ToolCategory.WRITE_OPERATION
        ):
            raise ProductionProtectionError(
                f"PRODUCTION PROTECTION: '{tool.name}' is strictly prohibited in "
                f"read-only environment {env.display_name}."
            )
        raise PermissionDeniedError(
            f"Tool '{tool.name}' is not allowed in the current environment "
            f"({env.display_name})."
        )

    def _check_shape(self, tool: ToolDescriptor, env: Environment, statement: str):
        if not is_write(statement):
            return
        keyword = leading_keyword(statement) or "UNKNOWN"
        if env.tier == PermissionTier.READ_ONLY:
            raise ProductionProtectionError(
                f"PRODUCTION PROTECTION: Write operations ({keyword}) are strictly "
                f"prohibited in read-only environment {env.display_name}."
            )
        if tool.category == ToolCategory.READ_ONLY:
            raise PermissionDeniedError(
                f"'{tool.name}' only runs read statements, got {keyword}. "
                "Use execute_query for statements that modify data."
            )

    def _redact(self, payload: dict[str, Any]) -> dict[str, Any]:
        security_filter = self._registry.security_filter
        if not security_filter.active:
            return payload

        note: Optional[str] = None
        if "rows" in payload:
            rows = payload["rows"]
            names = payload.get("columns") or (
                list(rows[0].keys()) if rows and isinstance(rows[0], dict) else []
            )
            masked = security_filter.sensitive_fields(names)
            payload["rows"] = security_filter.filter_rows(rows)
            if masked or security_filter.would_touch_sensitive_data(
                payload.get("query", "")
            ):
                note = SENSITIVE_ROWS_NOTE
        if "schema" in payload:
            schema = payload["schema"]
            masked = security_filter.sensitive_fields(c.get("name") for c in schema)
            payload["schema"] = security_filter.filter_schema(schema)
            if masked:
                note = (
                    f"{len(masked)} sensitive column(s) masked for security "
                    "in production environment."
                )
        if note:
            payload["security_note"] = note
        return payload
