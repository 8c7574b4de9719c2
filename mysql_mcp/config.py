"""Configuration for the MySQL environment MCP server."""
import os
from dataclasses import dataclass, field


@dataclass
class ServerConfig:
    """Server configuration loaded from environment variables.

    Per-environment connection parameters live in
    ``mysql_mcp.environments`` and are read from ``MYSQL_<ENV>_*`` vars.
    """

    # Environments
    default_environment: str = field(
        default_factory=lambda: os.environ.get(
            "MYSQL_MCP_DEFAULT_ENVIRONMENT", "local"
        )
    )
    production_environment: str = field(
        default_factory=lambda: os.environ.get(
            "MYSQL_MCP_PRODUCTION_ENVIRONMENT", "production"
        )
    )
    environments_config_path: str = field(
        default_factory=lambda: os.environ.get("MYSQL_MCP_ENVIRONMENTS_CONFIG", "")
    )

    # Query shaping
    default_limit: int = field(
        default_factory=lambda: int(os.environ.get("MYSQL_MCP_DEFAULT_LIMIT", "100"))
    )
    max_listed_tables: int = field(
        default_factory=lambda: int(
            os.environ.get("MYSQL_MCP_MAX_LISTED_TABLES", "100")
        )
    )

    # Transport
    transport: str = field(
        default_factory=lambda: os.environ.get("MYSQL_MCP_TRANSPORT", "stdio")
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("APP_PORT", "8000"))
    )

    log_level: str = field(
        default_factory=lambda: os.environ.get("MYSQL_MCP_LOG_LEVEL", "INFO").upper()
    )


config = ServerConfig()
