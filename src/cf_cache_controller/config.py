"""Configuration management for the CloudFront cache controller."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from cf_cache_controller.errors import ConfigurationError

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class DebugSettings(BaseModel):
    """Independent toggles for the two debug log categories."""

    log_cron_operations: bool = Field(default=False)
    log_invalidation_params: bool = Field(default=False)


class CredentialSettings(BaseModel):
    refresh_skew_seconds: int = Field(default=300, ge=0, le=3600)
    default_ttl_seconds: int = Field(default=3600, ge=60, le=43200)
    fetch_timeout_seconds: float = Field(default=5.0, gt=0, le=60)


class InvalidationSettings(BaseModel):
    distribution_id: str | None = Field(default=None)
    debounce_seconds: int = Field(default=60, ge=1, le=3600)
    item_limit: int = Field(default=100, ge=1, le=3000)
    published_status: str = Field(default="publish")
    cron_retry_disabled: bool = Field(
        default=False,
        description="Initial value of the disable switch when the store holds none.",
    )

    @field_validator("distribution_id")
    @classmethod
    def _strip_distribution_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class StorageSettings(BaseModel):
    sqlite_path: str = Field(default="./data/cf_cache_controller.sqlite")
    sqlite_wal: bool = Field(default=True)


class AWSSettings(BaseModel):
    region: str = Field(default="us-east-1")
    profile: str | None = Field(default=None)
    sdk_timeout_seconds: int = Field(default=30, ge=1, le=300)


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    debug: DebugSettings = Field(default_factory=DebugSettings)
    credentials: CredentialSettings = Field(default_factory=CredentialSettings)
    invalidation: InvalidationSettings = Field(default_factory=InvalidationSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "log_cron_operations": "C3_LOG_CRON_REGISTER_TASK",
    "log_invalidation_params": "C3_LOG_INVALIDATION_PARAMS",
    "distribution_id": "C3_DISTRIBUTION_ID",
    "debounce_seconds": "C3_INVALIDATION_INTERVAL",
    "item_limit": "C3_INVALIDATION_ITEM_LIMITS",
    "published_status": "C3_PUBLISHED_STATUS",
    "cron_retry_disabled": "C3_DISABLED_CRON_RETRY",
    "sqlite_path": "SQLITE_PATH",
    "aws_region": "AWS_DEFAULT_REGION",
    "aws_profile": "AWS_PROFILE",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    if candidate.is_absolute():
        return str(candidate.resolve())
    return str((_project_root() / candidate).resolve())


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "debug": {
            "log_cron_operations": _env_bool(
                ENV_KEYS["log_cron_operations"],
                DebugSettings().log_cron_operations,
            ),
            "log_invalidation_params": _env_bool(
                ENV_KEYS["log_invalidation_params"],
                DebugSettings().log_invalidation_params,
            ),
        },
        "credentials": {
            "refresh_skew_seconds": _env_int(
                "C3_CREDENTIAL_REFRESH_SKEW_SECONDS",
                CredentialSettings().refresh_skew_seconds,
            ),
            "default_ttl_seconds": _env_int(
                "C3_CREDENTIAL_DEFAULT_TTL_SECONDS",
                CredentialSettings().default_ttl_seconds,
            ),
            "fetch_timeout_seconds": _env_float(
                "C3_CREDENTIAL_FETCH_TIMEOUT_SECONDS",
                CredentialSettings().fetch_timeout_seconds,
            ),
        },
        "invalidation": {
            "distribution_id": os.getenv(ENV_KEYS["distribution_id"]),
            "debounce_seconds": _env_int(
                ENV_KEYS["debounce_seconds"],
                InvalidationSettings().debounce_seconds,
            ),
            "item_limit": _env_int(
                ENV_KEYS["item_limit"],
                InvalidationSettings().item_limit,
            ),
            "published_status": os.getenv(
                ENV_KEYS["published_status"], InvalidationSettings().published_status
            ),
            "cron_retry_disabled": _env_bool(
                ENV_KEYS["cron_retry_disabled"],
                InvalidationSettings().cron_retry_disabled,
            ),
        },
        "storage": {
            "sqlite_path": _resolve_path(
                os.getenv(ENV_KEYS["sqlite_path"], StorageSettings().sqlite_path)
            ),
            "sqlite_wal": _env_bool("SQLITE_WAL", StorageSettings().sqlite_wal),
        },
        "aws": {
            "region": os.getenv("AWS_REGION")
            or os.getenv(ENV_KEYS["aws_region"])
            or AWSSettings().region,
            "profile": os.getenv(ENV_KEYS["aws_profile"]),
            "sdk_timeout_seconds": _env_int(
                "SDK_TIMEOUT_SECONDS",
                AWSSettings().sdk_timeout_seconds,
            ),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    Path(settings.storage.sqlite_path).parent.mkdir(parents=True, exist_ok=True)

    return settings
