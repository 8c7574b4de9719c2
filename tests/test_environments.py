"""Test environment loading and the registry's switch semantics."""
import os
import tempfile
import pytest
from unittest.mock import patch

from mysql_mcp.config import ServerConfig
from mysql_mcp.environments import (
    ENVIRONMENT_WRITE_PERMISSIONS,
    EnvironmentRegistry,
    load_environments,
    resolve_tier,
)
from mysql_mcp.governance.tool_guard import PermissionTier
from mysql_mcp.utils.errors import ConfigurationError


def _clear_mysql_env():
    """Environment without any MYSQL_* variables for clean test state."""
    return {k: v for k, v in os.environ.items() if not k.startswith("MYSQL_")}


def _config(path: str = "") -> ServerConfig:
    return ServerConfig(environments_config_path=path)


# ── Tier resolution ───────────────────────────────────────────────────

class TestResolveTier:

    def test_writable_local_is_full(self):
        assert resolve_tier("local", True) == PermissionTier.FULL_ACCESS

    def test_writable_remote_requires_confirmation(self):
        assert resolve_tier("staging", True) == PermissionTier.CONFIRM_REQUIRED

    def test_not_writable_is_read_only(self):
        assert resolve_tier("local", False) == PermissionTier.READ_ONLY
        assert resolve_tier("production", False) == PermissionTier.READ_ONLY

    def test_static_permissions(self):
        assert ENVIRONMENT_WRITE_PERMISSIONS["local"] is True
        assert ENVIRONMENT_WRITE_PERMISSIONS["production"] is False


# ── Loading ───────────────────────────────────────────────────────────

class TestLoadEnvironments:

    def test_defaults(self):
        with patch.dict(os.environ, _clear_mysql_env(), clear=True):
            envs = load_environments(_config())
        assert list(envs) == ["local", "staging", "preproduction", "production"]
        assert envs["local"].connection.host == "localhost"
        assert envs["local"].connection.user == "root"
        assert envs["local"].tier == PermissionTier.FULL_ACCESS
        assert envs["production"].tier == PermissionTier.READ_ONLY
        assert envs["production"].connection.user == "readonly_user"
        assert "READ ONLY" in envs["staging"].description

    def test_env_vars(self):
        env = _clear_mysql_env()
        env.update(
            {
                "MYSQL_STAGING_HOST": "10.0.0.5",
                "MYSQL_STAGING_PORT": "3307",
                "MYSQL_STAGING_USER": "stage",
                "MYSQL_STAGING_DATABASE": "shop",
            }
        )
        with patch.dict(os.environ, env, clear=True):
            envs = load_environments(_config())
        conn = envs["staging"].connection
        assert (conn.host, conn.port, conn.user, conn.database) == ("10.0.0.5", 3307, "stage", "shop")

    def test_local_falls_back_to_unprefixed_vars(self):
        env = _clear_mysql_env()
        env.update({"MYSQL_HOST": "db.local", "MYSQL_USER": "dev"})
        with patch.dict(os.environ, env, clear=True):
            envs = load_environments(_config())
        assert envs["local"].connection.host == "db.local"
        assert envs["local"].connection.user == "dev"
        # Only local inherits the unprefixed variables
        assert envs["staging"].connection.host == "staging-db.example.com"

    def test_yaml_overrides_and_additions(self):
        yaml_content = """
environments:
  staging:
    host: staging.yaml.internal
    writable: true
  analytics:
    display_name: Analytics Replica
    host: analytics.internal
    user: analyst
"""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(yaml_content)
            f.flush()
            path = f.name
        try:
            with patch.dict(os.environ, _clear_mysql_env(), clear=True):
                envs = load_environments(_config(path))
        finally:
            os.unlink(path)

        assert envs["staging"].connection.host == "staging.yaml.internal"
        assert envs["staging"].tier == PermissionTier.CONFIRM_REQUIRED
        assert envs["analytics"].display_name == "Analytics Replica"
        assert envs["analytics"].tier == PermissionTier.READ_ONLY

    def test_env_vars_take_precedence_over_yaml(self):
        yaml_content = "environments:\n  staging:\n    host: from-yaml\n"
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(yaml_content)
            path = f.name
        env = _clear_mysql_env()
        env["MYSQL_STAGING_HOST"] = "from-env"
        try:
            with patch.dict(os.environ, env, clear=True):
                envs = load_environments(_config(path))
        finally:
            os.unlink(path)
        assert envs["staging"].connection.host == "from-env"

    def test_explicit_tier(self):
        yaml_content = "environments:\n  preproduction:\n    tier: confirm_required\n"
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(yaml_content)
            path = f.name
        try:
            with patch.dict(os.environ, _clear_mysql_env(), clear=True):
                envs = load_environments(_config(path))
        finally:
            os.unlink(path)
        assert envs["preproduction"].tier == PermissionTier.CONFIRM_REQUIRED

    def test_unknown_tier_rejected(self):
        yaml_content = "environments:\n  staging:\n    tier: superuser\n"
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(yaml_content)
            path = f.name
        try:
            with patch.dict(os.environ, _clear_mysql_env(), clear=True):
                with pytest.raises(ConfigurationError, match="unknown tier"):
                    load_environments(_config(path))
        finally:
            os.unlink(path)

    def test_missing_yaml_file(self):
        with patch.dict(os.environ, _clear_mysql_env(), clear=True):
            envs = load_environments(_config("/nonexistent/environments.yaml"))
        assert "local" in envs

    def test_environments_immutable(self):
        with patch.dict(os.environ, _clear_mysql_env(), clear=True):
            envs = load_environments(_config())
        with pytest.raises(TypeError):
            envs["rogue"] = envs["local"]


# ── Registry ──────────────────────────────────────────────────────────

class TestRegistry:

    def test_initial_state(self, registry, mock_session, environments):
        assert registry.get_active().name == "local"
        assert registry.is_active("local")
        assert not registry.is_active("production")
        mock_session.configure.assert_called_once_with(environments["local"].connection)

    def test_unknown_default_rejected(self, environments, mock_session):
        with pytest.raises(ConfigurationError):
            EnvironmentRegistry(environments, mock_session, active="qa")

    def test_describe_hides_password(self, registry):
        info = registry.describe("local")
        assert info["is_active"] is True
        assert "password" not in info
        assert "secret" not in str(info)

    async def test_switch(self, registry, mock_session, environments):
        result = await registry.switch_to("staging")

        assert result.environment.name == "staging"
        assert registry.get_active().name == "staging"
        assert registry.is_active("staging") and not registry.is_active("local")
        mock_session.close.assert_awaited_once()
        mock_session.configure.assert_called_with(environments["staging"].connection)
        mock_session.connect.assert_awaited_once()
        assert "DEVELOPMENT MODE" in result.security_status

    async def test_switch_into_production_activates_filter(self, registry):
        result = await registry.switch_to("production")
        assert registry.security_filter.active is True
        assert "PRODUCTION MODE" in result.security_status

    async def test_switch_out_of_production_deactivates_filter(self, environments, mock_session):
        registry = EnvironmentRegistry(environments, mock_session, active="production")
        assert registry.security_filter.active is True
        await registry.switch_to("local")
        assert registry.security_filter.active is False

    @pytest.mark.parametrize("name", ["qa", "broken", "nouser"])
    async def test_failed_switch_leaves_state_untouched(self, registry, mock_session, name):
        filter_before = registry.security_filter
        with pytest.raises(ConfigurationError):
            await registry.switch_to(name)

        assert registry.get_active().name == "local"
        assert registry.is_active("local")
        assert registry.security_filter is filter_before
        mock_session.close.assert_not_awaited()
        mock_session.connect.assert_not_awaited()
        assert mock_session.configure.call_count == 1

    async def test_connection_failure_after_switch(self, registry, mock_session):
        mock_session.connect.side_effect = ConnectionRefusedError("refused")
        with pytest.raises(ConnectionRefusedError):
            await registry.switch_to("staging")
        # Pointer moved; the next call reconnects lazily
        assert registry.get_active().name == "staging"
        mock_session.close.assert_awaited_once()
