"""Response formatting helpers."""
import json
from enum import Enum
from typing import Any


class ResponseFormat(str, Enum):
    MARKDOWN = "markdown"
    JSON = "json"


def format_query_results(rows: list[dict], columns: list[str] = None) -> str:
    if not rows:
        return "_No results returned._"
    cols = columns or list(rows[0].keys())
    lines = [f"**{len(rows)} row(s) returned**\n"]
    lines.append("| " + " | ".join(cols) + " |")
    lines.append("| " + " | ".join(["---"] * len(cols)) + " |")
    for row in rows[:50]:
        vals = [str(row.get(c, "")) for c in cols]
        lines.append("| " + " | ".join(vals) + " |")
    if len(rows) > 50:
        lines.append(f"\n_...and {len(rows) - 50} more rows (use LIMIT to control)_")
    return "\n".join(lines)


def format_schema_info(columns: list[dict], table_name: str) -> str:
    lines = [f"## Schema: `{table_name}`\n"]
    lines.append("| Column | Type | Nullable | Key | Default |")
    lines.append("| --- | --- | --- | --- | --- |")
    for c in columns:
        name = c["name"] + (" (sensitive)" if c.get("sensitive") else "")
        lines.append(
            f"| {name} | {c['type']} | {c.get('nullable', 'YES')} | "
            f"{c.get('key') or ''} | {c.get('default') if c.get('default') is not None else ''} |"
        )
    return "\n".join(lines)


def render(payload: dict[str, Any], fmt: ResponseFormat = ResponseFormat.JSON) -> str:
    """Render a pipeline payload for the caller.

    JSON keeps every field. Markdown shows the message, then rows or schema
    as a table, then any security note.
    """
    if fmt == ResponseFormat.JSON or payload.get("status") != "success":
        return json.dumps(payload, indent=2, default=str)

    parts = []
    if payload.get("message"):
        parts.append(payload["message"])
    if "schema" in payload:
        parts.append(format_schema_info(payload["schema"], payload.get("table", "")))
    elif "rows" in payload:
        parts.append(format_query_results(payload["rows"], payload.get("columns")))
    if payload.get("security_note"):
        parts.append(f"_Note: {payload['security_note']}_")
    return "\n\n".join(parts)
