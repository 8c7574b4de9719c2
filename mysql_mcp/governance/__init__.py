"""Environment-aware access control for the MySQL MCP server.

Provides layered enforcement per tool call:
- Tier-based tool permissions (read-only, confirm-required, full access)
- Confirmation handshake for data-modifying tools
- Statement-shape guard for raw SQL (sqlglot-based classification)
- Production-only redaction of sensitive columns and values
"""
