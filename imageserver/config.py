"""
Configuration module for the S3 Image Server.
Centralizes all configuration settings and environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Application settings
APP_TITLE = "S3 Image Server"
APP_DESCRIPTION = "Cached, read-only listings of images stored in an S3 bucket"
LIVENESS_MESSAGE = "S3 Image Server is Running..."

REQUIRED_ENV = ("AWS_BUCKET", "AWS_REGION", "AWS_ACCESS_KEY", "AWS_SECRET_KEY")

TRUTHY_VALUES = {"1", "true", "yes", "on"}
FALSEY_VALUES = {"0", "false", "no", "off"}

# Server defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5000
DEFAULT_CORS_ORIGIN = "*"

# Cache refresh
DEFAULT_REFRESH_INTERVAL_SECONDS = 45.0
LIST_PAGE_SIZE = 1000

# Rate limiting for /api/ routes
DEFAULT_RATE_LIMIT_REQUESTS = 60
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60

# Logging settings
DEFAULT_LOG_DIR = "logs"
LOG_RETENTION = "7 days"
LOG_ROTATION = "1 day"
DEFAULT_LOG_LEVEL = "INFO"


class ConfigError(RuntimeError):
    """Raised when the environment does not describe a usable configuration."""

    def __init__(self, message: str, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = missing


@dataclass(frozen=True)
class Settings:
    """Validated process configuration."""

    bucket: str
    region: str
    access_key: str
    secret_key: str
    cors_origin: str = DEFAULT_CORS_ORIGIN
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    dev: bool = False
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL_SECONDS
    endpoint_url: Optional[str] = None
    public_url: Optional[str] = None
    force_path_style: bool = False
    rate_limit_requests: int = DEFAULT_RATE_LIMIT_REQUESTS
    rate_limit_window: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    trust_proxy: bool = True
    request_logging_enabled: bool = True
    log_dir: str = DEFAULT_LOG_DIR
    log_level: str = DEFAULT_LOG_LEVEL


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    """Parse an environment variable into a strict boolean."""
    raw_value = _optional(env, name)
    if raw_value is None:
        return default
    normalized = raw_value.lower()
    if normalized in TRUTHY_VALUES:
        return True
    if normalized in FALSEY_VALUES:
        return False
    raise ConfigError(
        f"Environment variable '{name}' must be one of: true/false, 1/0, yes/no, on/off"
    )


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw_value = _optional(env, name)
    if raw_value is None:
        return default
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ConfigError(
            f"Environment variable '{name}' must be an integer, got '{raw_value}'"
        ) from exc
    if value <= 0:
        raise ConfigError(f"Environment variable '{name}' must be positive")
    return value


def _parse_seconds(env: Mapping[str, str], name: str, default: float) -> float:
    raw_value = _optional(env, name)
    if raw_value is None:
        return default
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise ConfigError(
            f"Environment variable '{name}' must be a number of seconds, got '{raw_value}'"
        ) from exc
    if value <= 0:
        raise ConfigError(f"Environment variable '{name}' must be positive")
    return value


def missing_required(env: Optional[Mapping[str, str]] = None) -> tuple[str, ...]:
    """Return the names of required variables that are unset or blank."""
    env = os.environ if env is None else env
    return tuple(name for name in REQUIRED_ENV if _optional(env, name) is None)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build validated settings from the environment.

    Args:
        env: Mapping to read from. Defaults to ``os.environ``.

    Raises:
        ConfigError: if a required variable is missing or a value is malformed.
    """
    env = os.environ if env is None else env

    missing = missing_required(env)
    if missing:
        names = ", ".join(missing)
        raise ConfigError(f"Missing environment variable(s): {names}", missing=missing)

    public_url = _optional(env, "S3_PUBLIC_URL")
    return Settings(
        bucket=env["AWS_BUCKET"].strip(),
        region=env["AWS_REGION"].strip(),
        access_key=env["AWS_ACCESS_KEY"].strip(),
        secret_key=env["AWS_SECRET_KEY"].strip(),
        cors_origin=_optional(env, "CORS_ORIGIN") or DEFAULT_CORS_ORIGIN,
        host=_optional(env, "HOST") or DEFAULT_HOST,
        port=_parse_int(env, "PORT", DEFAULT_PORT),
        dev=_parse_bool(env, "DEV", False),
        refresh_interval=_parse_seconds(
            env, "REFRESH_INTERVAL_SECONDS", DEFAULT_REFRESH_INTERVAL_SECONDS
        ),
        endpoint_url=_optional(env, "S3_ENDPOINT"),
        public_url=public_url.rstrip("/") if public_url else None,
        force_path_style=_parse_bool(env, "S3_FORCE_PATH_STYLE", False),
        rate_limit_requests=_parse_int(
            env, "RATE_LIMIT_REQUESTS", DEFAULT_RATE_LIMIT_REQUESTS
        ),
        rate_limit_window=_parse_int(
            env, "RATE_LIMIT_WINDOW_SECONDS", DEFAULT_RATE_LIMIT_WINDOW_SECONDS
        ),
        trust_proxy=_parse_bool(env, "TRUST_PROXY", True),
        request_logging_enabled=_parse_bool(env, "REQUEST_LOGGING_ENABLED", True),
        log_dir=_optional(env, "LOG_DIR") or DEFAULT_LOG_DIR,
        log_level=(_optional(env, "LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )
