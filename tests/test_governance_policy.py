"""Test the runtime governance policy: permission loading and enforcement.

Tests env var parsing, YAML config loading, env var precedence over YAML,
and PolicyViolation on denied statements.
"""
import pytest

from mariadb_mcp.governance.policy import (
    GovernancePolicy,
    _parse_env_bool,
    build_governance_policy,
    load_permissions,
)
from mariadb_mcp.governance.sql_guard import DENY_STATEMENT_TYPE, SQLPermissions
from mariadb_mcp.utils.errors import ConfigError, PolicyViolation


@pytest.fixture
def governance_yaml(tmp_path):
    def _write(content: str) -> str:
        path = tmp_path / "governance.yaml"
        path.write_text(content)
        return str(path)
    return _write


# ── _parse_env_bool Tests ─────────────────────────────────────────────

class TestParseEnvBool:

    def test_unset(self):
        assert _parse_env_bool(None) is None

    def test_empty_string(self):
        assert _parse_env_bool("  ") is None

    @pytest.mark.parametrize("value", ["true", "TRUE", " True "])
    def test_true(self, value):
        assert _parse_env_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "yes"])
    def test_anything_else_is_false(self, value):
        assert _parse_env_bool(value) is False


# ── load_permissions Tests ────────────────────────────────────────────

class TestLoadPermissions:

    def test_defaults_read_only(self):
        assert load_permissions({}) == SQLPermissions()

    def test_env_flags(self):
        perms = load_permissions({
            "MARIADB_ALLOW_INSERT": "true",
            "MARIADB_ALLOW_DELETE": "true",
        })
        assert perms == SQLPermissions(allow_insert=True, allow_delete=True)

    def test_yaml_permissions(self, governance_yaml):
        path = governance_yaml(
            "permissions:\n  allow_update: true\n  allow_delete: false\n"
        )
        perms = load_permissions({"MARIADB_GOVERNANCE_CONFIG": path})
        assert perms == SQLPermissions(allow_update=True)

    def test_env_overrides_yaml(self, governance_yaml):
        path = governance_yaml("permissions:\n  allow_update: true\n  allow_insert: true\n")
        perms = load_permissions({
            "MARIADB_GOVERNANCE_CONFIG": path,
            "MARIADB_ALLOW_UPDATE": "false",
        })
        assert perms == SQLPermissions(allow_insert=True, allow_update=False)

    @pytest.mark.parametrize("value", ['"false"', '"no"', "'0'", "false", "no", "~"])
    def test_yaml_false_like_values_stay_denied(self, governance_yaml, value):
        path = governance_yaml(f"permissions:\n  allow_delete: {value}\n")
        perms = load_permissions({"MARIADB_GOVERNANCE_CONFIG": path})
        assert perms.allow_delete is False

    def test_yaml_quoted_true(self, governance_yaml):
        path = governance_yaml('permissions:\n  allow_insert: "True"\n')
        assert load_permissions({"MARIADB_GOVERNANCE_CONFIG": path}).allow_insert

    def test_yaml_non_boolean_value_raises_config_error(self, governance_yaml):
        path = governance_yaml("permissions:\n  allow_update: 1\n")
        with pytest.raises(ConfigError, match="allow_update"):
            load_permissions({"MARIADB_GOVERNANCE_CONFIG": path})

    def test_non_mapping_permissions_section_raises_config_error(self, governance_yaml):
        path = governance_yaml("permissions:\n  - allow_delete\n")
        with pytest.raises(ConfigError, match="'permissions' must be a mapping"):
            load_permissions({"MARIADB_GOVERNANCE_CONFIG": path})

    def test_missing_yaml_file_falls_back(self, tmp_path):
        perms = load_permissions(
            {"MARIADB_GOVERNANCE_CONFIG": str(tmp_path / "missing.yaml")}
        )
        assert perms == SQLPermissions()

    def test_empty_yaml_file(self, governance_yaml):
        assert load_permissions(
            {"MARIADB_GOVERNANCE_CONFIG": governance_yaml("")}
        ) == SQLPermissions()

    def test_invalid_yaml_raises_config_error(self, governance_yaml):
        path = governance_yaml("permissions: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid governance config"):
            load_permissions({"MARIADB_GOVERNANCE_CONFIG": path})

    def test_non_mapping_yaml_raises_config_error(self, governance_yaml):
        path = governance_yaml("- allow_insert\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_permissions({"MARIADB_GOVERNANCE_CONFIG": path})


# ── GovernancePolicy Tests ────────────────────────────────────────────

class TestGovernancePolicy:

    def test_enforce_allows(self):
        policy = GovernancePolicy(permissions=SQLPermissions())
        assert policy.enforce("SELECT 1").verb == "SELECT"

    def test_enforce_raises_policy_violation(self):
        policy = GovernancePolicy(permissions=SQLPermissions())
        with pytest.raises(PolicyViolation, match=DENY_STATEMENT_TYPE):
            policy.enforce("DELETE FROM users")

    def test_build_uses_permissions(self):
        policy = build_governance_policy(SQLPermissions(allow_delete=True))
        assert policy.enforce("DELETE FROM users WHERE id = 1").allowed
