"""Configuration management for pgscope.

Handles TOML config files, environment variables, named profiles,
and configuration precedence resolution.

Precedence order (highest to lowest):
1. CLI flags (--host, --port, etc.)
2. --dsn flag (parsed into components)
3. Environment variables (PGHOST, PGPORT, PGDATABASE, PGUSER, PGPASSWORD, PGSSLMODE)
4. Named profile (--profile or PGSCOPE_PROFILE env var)
5. Built-in defaults
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from pydantic import BaseModel, field_validator, model_validator

from pgscope.core.exceptions import ConfigError
from pgscope.core.models import TLS_SSLMODES, ConnectionConfig

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "pgscope" / "config.toml"

_VALID_SSLMODES = frozenset(
    {"disable", "allow", "prefer", "require", "verify-ca", "verify-full"}
)

_PG_ENV_VARS: dict[str, str] = {
    "PGHOST": "host",
    "PGPORT": "port",
    "PGDATABASE": "database",
    "PGUSER": "user",
    "PGPASSWORD": "password",  # pragma: allowlist secret
    "PGSSLMODE": "use_tls",
}

_DEFAULTS: dict[str, Any] = {
    "host": "localhost",
    "port": 5432,
    "database": "postgres",
    "user": "",
    "password": "",
    "use_tls": False,
    "ssl_mode": None,
}


def sslmode_uses_tls(sslmode: str) -> bool:
    if sslmode not in _VALID_SSLMODES:
        msg = (
            f"Invalid sslmode: '{sslmode}'. "
            f"Must be one of: {', '.join(sorted(_VALID_SSLMODES))}"
        )
        raise ConfigError(msg)
    return sslmode in TLS_SSLMODES


def parse_dsn(dsn: str) -> dict[str, Any]:
    """Supports postgresql:// and postgres:// schemes with an sslmode param."""
    parsed = urlparse(dsn)
    if parsed.scheme not in ("postgresql", "postgres"):
        msg = f"Invalid DSN scheme: '{parsed.scheme}'. Expected 'postgresql' or 'postgres'"
        raise ConfigError(msg)

    result: dict[str, Any] = {}
    if parsed.hostname:
        result["host"] = parsed.hostname
    try:
        port = parsed.port
    except ValueError as e:
        raise ConfigError(f"Invalid DSN port: {e}") from e
    if port:
        result["port"] = port
    if parsed.path and parsed.path.strip("/"):
        result["database"] = unquote(parsed.path.strip("/"))
    if parsed.username:
        result["user"] = unquote(parsed.username)
    if parsed.password:
        result["password"] = unquote(parsed.password)
    query_params = parse_qs(parsed.query)
    if "sslmode" in query_params:
        sslmode = query_params["sslmode"][0]
        result["use_tls"] = sslmode_uses_tls(sslmode)
        result["ssl_mode"] = sslmode
    return result


class PgProfile(BaseModel):
    dsn: str | None = None
    host: str = "localhost"
    port: int = 5432
    database: str = "postgres"
    user: str = ""
    password: str = ""
    use_tls: bool = False
    ssl_mode: str | None = None

    @model_validator(mode="before")
    @classmethod
    def parse_dsn_into_components(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("dsn"):
            dsn_fields = parse_dsn(data["dsn"])
            for key, value in dsn_fields.items():
                if key not in data:
                    data[key] = value
        if isinstance(data, dict) and data.get("ssl_mode") and "use_tls" not in data:
            data["use_tls"] = sslmode_uses_tls(data["ssl_mode"])
        return data

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            msg = f"Invalid port: {v}. Must be 1-65535"
            raise ValueError(msg)
        return v

    @field_validator("ssl_mode")
    @classmethod
    def validate_ssl_mode(cls, v: str | None) -> str | None:
        if v is not None:
            sslmode_uses_tls(v)
        return v


class AppConfig(BaseModel):
    default_format: str | None = None
    default_profile: str | None = None
    default_schema: str = "public"
    profiles: dict[str, PgProfile] = {}


class ResolvedConfig(BaseModel):
    host: str = "localhost"
    port: int = 5432
    database: str = "postgres"
    user: str = ""
    password: str = ""
    use_tls: bool = False
    ssl_mode: str | None = None
    default_format: str | None = None
    default_schema: str = "public"
    active_profile: str | None = None
    sources: dict[str, str] = {}

    def to_connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.user,
            password=self.password,
            use_tls=self.use_tls,
            ssl_mode=self.ssl_mode,
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except ConfigError:
        raise
    except Exception as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    dsn: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Resolve configuration using precedence chain.

    CLI > DSN > env > profile > built-in defaults.
    """
    sources: dict[str, str] = {}
    resolved: dict[str, Any] = dict(_DEFAULTS)
    for key in resolved:
        sources[key] = "default"

    resolved["default_format"] = config.default_format
    resolved["default_schema"] = config.default_schema

    # Named profile
    effective_profile = profile_name
    if not effective_profile:
        effective_profile = os.environ.get("PGSCOPE_PROFILE")
    if not effective_profile:
        effective_profile = config.default_profile

    if effective_profile:
        if effective_profile not in config.profiles:
            available = (
                ", ".join(sorted(config.profiles.keys())) if config.profiles else "none"
            )
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        for key in profile.model_fields_set:
            if key == "dsn":
                continue
            if key in _DEFAULTS:
                resolved[key] = getattr(profile, key)
                sources[key] = f"profile: {effective_profile}"

    # Environment variables
    for env_var, field_name in _PG_ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if field_name == "port":
            try:
                resolved[field_name] = int(value)
            except ValueError:
                msg = f"Invalid {env_var} value: '{value}'. Must be an integer"
                raise ConfigError(msg) from None
        elif field_name == "use_tls":
            resolved[field_name] = sslmode_uses_tls(value)
            resolved["ssl_mode"] = value
            sources["ssl_mode"] = f"env: {env_var}"
        else:
            resolved[field_name] = value
        sources[field_name] = f"env: {env_var}"

    # DSN flag
    if dsn:
        for key, value in parse_dsn(dsn).items():
            resolved[key] = value
            sources[key] = "dsn"

    # CLI flags (highest priority)
    cli_to_field = {
        "host": "host",
        "port": "port",
        "database": "database",
        "user": "user",
        "password": "password",  # pragma: allowlist secret
        "tls": "use_tls",
        "schema": "default_schema",
    }
    for cli_name, field_name in cli_to_field.items():
        value = cli_overrides.get(cli_name)
        if value is not None:
            resolved[field_name] = value
            sources[field_name] = f"cli: --{cli_name}"

    resolved["active_profile"] = effective_profile
    resolved["sources"] = sources
    return ResolvedConfig(**resolved)
