from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PORT: listen port (default 3000)
    - HOST: bind host (default '0.0.0.0')
    - API_PREFIX: URL prefix for the REST routes (default '/api')
    - DATABASE_URL: SQLAlchemy database URL. Default 'sqlite:///./data/todos.db'
    - DATABASE_ECHO: 'true' to log every SQL statement (default: false)
    - AUTO_MIGRATE: 'true' to apply pending migrations at startup (default: true)
    - TODOS_ACCESS: letters C, R, U, D enabling each operation (default 'CRUD')
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: logging level name (default 'info')
    """

    port: int = 3000
    host: str = "0.0.0.0"
    api_prefix: str = "/api"
    database_url: str = "sqlite:///./data/todos.db"
    database_echo: bool = False
    auto_migrate: bool = True
    todos_access: str = "CRUD"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "info"


def _get_env(name: str, default: str) -> str:
    """Read an env var, treating unset and empty values as the default."""
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    """
    Parse common truthy/falsy spellings (1/0, true/false, yes/no, on/off).
    Anything else yields the default.
    """
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_port(value: str, default: int = 3000) -> int:
    try:
        port = int(value.strip())
    except ValueError:
        return default
    if not (0 < port < 65536):
        return default
    return port


def _parse_prefix(value: str) -> str:
    """
    Normalize the API prefix to '/segment' form without a trailing slash.
    An empty or '/' prefix mounts the routes at the root.
    """
    stripped = value.strip().strip("/")
    return f"/{stripped}" if stripped else ""


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    log_level = _get_env("LOG_LEVEL", "info").strip().lower()
    if log_level not in {"critical", "error", "warning", "info", "debug"}:
        log_level = "info"

    return Settings(
        port=_parse_port(_get_env("PORT", "3000")),
        host=_get_env("HOST", "0.0.0.0").strip(),
        api_prefix=_parse_prefix(os.getenv("API_PREFIX", "/api")),
        database_url=_get_env("DATABASE_URL", "sqlite:///./data/todos.db").strip(),
        database_echo=_parse_bool(_get_env("DATABASE_ECHO", "false"), False),
        auto_migrate=_parse_bool(_get_env("AUTO_MIGRATE", "true"), True),
        todos_access=_get_env("TODOS_ACCESS", "CRUD").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=log_level,
    )
