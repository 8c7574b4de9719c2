"""Environment registry: named deployment targets and the single active one.

Environments are built once from env vars (primary) and an optional YAML
file. The only mutable state is the active environment name, which changes
together with the session's connection and only through ``switch_to``.
"""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml

from mysql_mcp.config import ServerConfig
from mysql_mcp.db import ConnectionParams, MySQLSession
from mysql_mcp.governance.masking import ProductionSecurityFilter
from mysql_mcp.governance.tool_guard import PermissionTier
from mysql_mcp.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Which environments accept writes. Fixed per deployment; a writable ``local``
# gets full access, any other writable environment requires confirmation.
ENVIRONMENT_WRITE_PERMISSIONS: Mapping[str, bool] = MappingProxyType(
    {
        "local": True,
        "staging": False,
        "preproduction": False,
        "production": False,
    }
)

_DEFAULTS: dict[str, dict[str, Any]] = {
    "local": {
        "display_name": "Local Development",
        "host": "localhost",
        "user": "root",
    },
    "staging": {
        "display_name": "Staging Environment",
        "host": "staging-db.example.com",
        "user": "staging_user",
    },
    "preproduction": {
        "display_name": "Pre-Production Environment",
        "host": "preprod-db.example.com",
        "user": "preprod_user",
    },
    "production": {
        "display_name": "Production (Read-Only Replica)",
        "host": "slave-db.example.com",
        "user": "readonly_user",
    },
}

_DESCRIPTIONS: dict[PermissionTier, str] = {
    PermissionTier.FULL_ACCESS: "{label} database with full access",
    PermissionTier.CONFIRM_REQUIRED: (
        "{label} database with confirmation for destructive operations"
    ),
    PermissionTier.READ_ONLY: "{label} database - READ ONLY access",
}


@dataclass(frozen=True)
class Environment:
    """A named deployment target with its own connection and tier."""

    name: str
    display_name: str
    connection: ConnectionParams
    tier: PermissionTier
    description: str

    def describe(self, is_active: bool) -> dict[str, Any]:
        """Public descriptor. Never includes the password."""
        return {
            "name": self.name,
            "display_name": self.display_name,
            "host": self.connection.host,
            "port": self.connection.port,
            "user": self.connection.user,
            "database": self.connection.database,
            "permissions": self.tier.value,
            "description": self.description,
            "is_active": is_active,
        }


@dataclass(frozen=True)
class SwitchResult:
    environment: Environment
    security_status: str


def resolve_tier(name: str, writable: bool) -> PermissionTier:
    if not writable:
        return PermissionTier.READ_ONLY
    if name == "local":
        return PermissionTier.FULL_ACCESS
    return PermissionTier.CONFIRM_REQUIRED


def _load_yaml_config(path: str) -> dict:
    """Load environment definitions from a YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Environments config file not found: {path}")
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _env(name: str, key: str, fallback_key: Optional[str] = None) -> Optional[str]:
    """Read MYSQL_<NAME>_<KEY>, then MYSQL_<KEY> when a fallback is given."""
    value = os.environ.get(f"MYSQL_{name.upper()}_{key}")
    if value is None and fallback_key:
        value = os.environ.get(f"MYSQL_{fallback_key}")
    return value


def _build_environment(name: str, section: dict[str, Any]) -> Environment:
    defaults = _DEFAULTS.get(name, {})
    # Only the local environment inherits the unprefixed MYSQL_* variables
    fallback = (lambda key: key) if name == "local" else (lambda key: None)

    def pick(key: str, env_key: str, default: Any = "") -> Any:
        value = _env(name, env_key, fallback(env_key))
        if value is not None:
            return value
        if section.get(key) is not None:
            return section[key]
        return defaults.get(key, default)

    connection = ConnectionParams(
        host=str(pick("host", "HOST")),
        port=int(pick("port", "PORT", 3306)),
        user=str(pick("user", "USER")),
        password=str(pick("password", "PASSWORD")),
        database=pick("database", "DATABASE", None) or None,
    )

    if section.get("tier"):
        try:
            tier = PermissionTier(str(section["tier"]).lower())
        except ValueError:
            raise ConfigurationError(
                f"Environment '{name}' has unknown tier '{section['tier']}'. "
                f"Expected one of: {', '.join(t.value for t in PermissionTier)}"
            )
    else:
        writable = section.get("writable", ENVIRONMENT_WRITE_PERMISSIONS.get(name, False))
        tier = resolve_tier(name, bool(writable))

    display_name = section.get("display_name") or defaults.get(
        "display_name", name.title()
    )
    description = section.get("description") or _DESCRIPTIONS[tier].format(
        label=display_name
    )
    return Environment(
        name=name,
        display_name=display_name,
        connection=connection,
        tier=tier,
        description=description,
    )


def load_environments(config: ServerConfig) -> Mapping[str, Environment]:
    """Build every configured environment.

    The four standard environments always exist; YAML may add more or
    override fields. Env vars take precedence over YAML.
    """
    yaml_data = {}
    if config.environments_config_path:
        yaml_data = _load_yaml_config(config.environments_config_path)
    sections: dict[str, dict] = yaml_data.get("environments") or {}

    names = list(_DEFAULTS) + [n for n in sections if n not in _DEFAULTS]
    environments = {
        name: _build_environment(name, sections.get(name) or {}) for name in names
    }
    logger.info(
        "Environments loaded: "
        + ", ".join(f"{e.name}={e.tier.value}" for e in environments.values())
    )
    return MappingProxyType(environments)


class EnvironmentRegistry:
    """Holds the configured environments and tracks the active one.

    ``switch_to`` is the single writer of the active name, the security
    filter and the session binding. Callers are expected to serialize
    requests; nothing here guards against overlapping switches.
    """

    def __init__(
        self,
        environments: Mapping[str, Environment],
        session: MySQLSession,
        active: str = "local",
        production_label: str = "production",
    ):
        if active not in environments:
            raise ConfigurationError(
                f"Default environment '{active}' not found. "
                f"Available: {', '.join(environments)}"
            )
        self._environments = MappingProxyType(dict(environments))
        self._session = session
        self._production_label = production_label
        self._active = active
        self._security_filter = ProductionSecurityFilter(active, production_label)
        self._session.configure(environments[active].connection)

    @property
    def environments(self) -> Mapping[str, Environment]:
        return self._environments

    @property
    def session(self) -> MySQLSession:
        return self._session

    @property
    def security_filter(self) -> ProductionSecurityFilter:
        return self._security_filter

    @property
    def production_label(self) -> str:
        return self._production_label

    def get_active(self) -> Environment:
        return self._environments[self._active]

    def is_active(self, name: str) -> bool:
        return name == self._active

    def describe(self, name: str) -> dict[str, Any]:
        return self._environments[name].describe(self.is_active(name))

    def validate(self, name: str) -> Environment:
        env = self._environments.get(name)
        if env is None:
            raise ConfigurationError(
                f"Environment '{name}' not found. "
                f"Available: {', '.join(self._environments)}"
            )
        if not env.connection.is_complete:
            raise ConfigurationError(
                f"Environment '{name}' is not properly configured "
                f"(host and user are required)."
            )
        return env

    async def switch_to(self, name: str) -> SwitchResult:
        """Make ``name`` the active environment and connect to it.

        Validation failures leave every piece of state untouched. Once
        validated, the old connection is closed, the pointer and filter move,
        and a fresh connection is opened and pinged before returning.
        """
        env = self.validate(name)
        previous = self._active

        await self._session.close()
        self._active = env.name
        self._security_filter = ProductionSecurityFilter(
            env.name, self._production_label
        )
        self._session.configure(env.connection)
        logger.info(f"Switched environment: {previous} -> {env.name} ({env.tier.value})")

        await self._session.connect()
        return SwitchResult(
            environment=env,
            security_status=self._security_filter.security_status(),
        )
