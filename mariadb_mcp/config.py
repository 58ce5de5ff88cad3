"""Configuration for the MariaDB MCP server.

One immutable value loaded from environment variables at startup. Missing
credentials or malformed numbers raise ConfigError immediately instead of
failing on the first tool call.
"""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from mariadb_mcp.governance.policy import load_permissions
from mariadb_mcp.governance.sql_guard import SQLPermissions
from mariadb_mcp.utils.errors import ConfigError

DEFAULT_PORT = 3306
DEFAULT_TIMEOUT_MS = 10000
DEFAULT_ROW_LIMIT = 1000
DEFAULT_POOL_SIZE = 5


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class MariaDBConfig:
    """Target server, permission flags and execution limits."""

    host: str
    user: str
    password: str
    port: int = DEFAULT_PORT
    database: Optional[str] = None

    # Safety
    allow_insert: bool = False
    allow_update: bool = False
    allow_delete: bool = False
    row_limit: int = DEFAULT_ROW_LIMIT
    query_timeout_ms: int = DEFAULT_TIMEOUT_MS

    # Pool settings
    connect_timeout_ms: int = DEFAULT_TIMEOUT_MS
    acquire_timeout_ms: int = DEFAULT_TIMEOUT_MS
    pool_size: int = DEFAULT_POOL_SIZE

    debug_sql: bool = False

    def __post_init__(self):
        missing = [
            name
            for name, value in {
                "MARIADB_HOST": self.host,
                "MARIADB_USER": self.user,
                "MARIADB_PASSWORD": self.password,
            }.items()
            if not value
        ]
        if missing:
            raise ConfigError(
                f"Missing required configuration: {', '.join(missing)}. "
                "Set MARIADB_HOST, MARIADB_USER and MARIADB_PASSWORD."
            )
        for name in (
            "port",
            "row_limit",
            "query_timeout_ms",
            "connect_timeout_ms",
            "acquire_timeout_ms",
            "pool_size",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")

    @property
    def permissions(self) -> SQLPermissions:
        return SQLPermissions(
            allow_insert=self.allow_insert,
            allow_update=self.allow_update,
            allow_delete=self.allow_delete,
        )

    @property
    def query_timeout(self) -> float:
        return self.query_timeout_ms / 1000

    @property
    def connect_timeout(self) -> float:
        return self.connect_timeout_ms / 1000

    @property
    def acquire_timeout(self) -> float:
        return self.acquire_timeout_ms / 1000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "MariaDBConfig":
        """Load configuration from MARIADB_* environment variables."""
        env = os.environ if environ is None else environ
        permissions = load_permissions(env)
        return cls(
            host=env.get("MARIADB_HOST", "").strip(),
            port=_env_int(env, "MARIADB_PORT", DEFAULT_PORT),
            user=env.get("MARIADB_USER", "").strip(),
            password=env.get("MARIADB_PASSWORD", ""),
            database=env.get("MARIADB_DATABASE", "").strip() or None,
            allow_insert=permissions.allow_insert,
            allow_update=permissions.allow_update,
            allow_delete=permissions.allow_delete,
            row_limit=_env_int(env, "MARIADB_ROW_LIMIT", DEFAULT_ROW_LIMIT),
            query_timeout_ms=_env_int(env, "MARIADB_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            connect_timeout_ms=_env_int(
                env, "MARIADB_CONNECT_TIMEOUT_MS", DEFAULT_TIMEOUT_MS
            ),
            acquire_timeout_ms=_env_int(
                env, "MARIADB_ACQUIRE_TIMEOUT_MS", DEFAULT_TIMEOUT_MS
            ),
            pool_size=_env_int(env, "MARIADB_POOL_SIZE", DEFAULT_POOL_SIZE),
            debug_sql=env.get("DEBUG_SQL", "false").lower() == "true",
        )
