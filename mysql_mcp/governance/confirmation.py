"""Confirmation handshake for data-modifying tools.

Stateless: every call must carry ``confirm: true`` on its own. A confirmation
given on one call never covers the next. Whether a call is withheld is
decided by ``tool_guard.decide``; this module builds the outcome returned
in place of execution.
"""
import logging
from dataclasses import dataclass
from typing import Any

from mysql_mcp.governance.tool_guard import ToolDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfirmationRequired:
    """Structured non-error outcome asking the caller to re-invoke."""

    tool: str
    environment: str

    @property
    def message(self) -> str:
        return (
            f"Tool '{self.tool}' can modify data in the {self.environment} "
            f'environment. Re-run with the argument {{"confirm": true}} to proceed.'
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "confirmation_required",
            "confirmation_required": True,
            "tool": self.tool,
            "environment": self.environment,
            "message": self.message,
        }


def request_confirmation(tool: ToolDescriptor, environment: str) -> ConfirmationRequired:
    """Withhold ``tool`` and ask the caller to confirm."""
    logger.info(f"Withholding '{tool.name}' in {environment}: confirmation required")
    return ConfirmationRequired(tool=tool.name, environment=environment)
