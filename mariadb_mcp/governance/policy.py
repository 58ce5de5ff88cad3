"""Runtime governance policy.

Loads permission flags from env vars (primary) and an optional YAML file,
and binds them to the SQL policy engine.
"""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import yaml

from mariadb_mcp.governance.sql_guard import (
    PolicyDecision,
    SQLPermissions,
    evaluate,
)
from mariadb_mcp.utils.errors import ConfigError, PolicyViolation

logger = logging.getLogger(__name__)

PERMISSION_ENV_VARS: dict[str, str] = {
    "allow_insert": "MARIADB_ALLOW_INSERT",
    "allow_update": "MARIADB_ALLOW_UPDATE",
    "allow_delete": "MARIADB_ALLOW_DELETE",
}


def _load_yaml_config(path: str) -> dict:
    """Load governance config from YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Governance config file not found: {path}")
        return {}

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid governance config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Governance config {path} must be a mapping")
    return data


def _parse_env_bool(value: Optional[str]) -> Optional[bool]:
    """Parse a true/false env var. Returns None if unset."""
    if value is None or not value.strip():
        return None
    return value.strip().lower() == "true"


def _parse_yaml_bool(name: str, value) -> bool:
    """Parse a permission flag from the YAML file. Missing means denied."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    raise ConfigError(f"Governance permission {name} must be true or false, got {value!r}")


def load_permissions(environ: Mapping[str, str] = None) -> SQLPermissions:
    """Resolve write permissions from env vars + optional YAML.

    Env vars take precedence over the ``permissions`` section of the file
    named by ``MARIADB_GOVERNANCE_CONFIG``. Anything unset stays denied.
    """
    env = os.environ if environ is None else environ

    yaml_data = {}
    yaml_path = env.get("MARIADB_GOVERNANCE_CONFIG", "")
    if yaml_path:
        yaml_data = _load_yaml_config(yaml_path)
    section = yaml_data.get("permissions") or {}
    if not isinstance(section, dict):
        raise ConfigError("Governance config 'permissions' must be a mapping")

    flags = {}
    for name, env_var in PERMISSION_ENV_VARS.items():
        from_env = _parse_env_bool(env.get(env_var))
        if from_env is not None:
            flags[name] = from_env
        else:
            flags[name] = _parse_yaml_bool(name, section.get(name))
    return SQLPermissions(**flags)


@dataclass(frozen=True)
class GovernancePolicy:
    """Resolved governance policy, the runtime enforcement object."""

    permissions: SQLPermissions

    def enforce(self, sql: str) -> PolicyDecision:
        """Evaluate ``sql`` and raise PolicyViolation on denial."""
        decision = evaluate(sql, self.permissions)
        if not decision.allowed:
            logger.warning(f"Statement denied: {decision.reason}")
            raise PolicyViolation(decision.reason)
        return decision


def build_governance_policy(permissions: SQLPermissions) -> GovernancePolicy:
    """Build the runtime governance policy for a set of permission flags."""
    logger.info(
        f"Governance: allowed verbs={', '.join(permissions.allowed_verbs)}"
    )
    return GovernancePolicy(permissions=permissions)
