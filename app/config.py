"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

from db.config import load_env_files
from pipelines.base import ROLE_PERMISSIONS, PipelineConfig

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PipelineSettings:
    """
    Runtime settings for batch CSV loads.
    """

    pipeline_name: str = "batch_sales_pipeline"
    batch_size: int = 1000
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    max_reported_rejections: int = 500
    log_rejections: bool = True

    def to_pipeline_config(self) -> PipelineConfig:
        return PipelineConfig(
            pipeline_name=self.pipeline_name,
            batch_size=self.batch_size,
            max_retries=self.max_retries,
            retry_delay_seconds=self.retry_delay_seconds,
            max_reported_rejections=self.max_reported_rejections,
            log_rejections=self.log_rejections,
        )


@lru_cache(maxsize=1)
def get_pipeline_settings() -> PipelineSettings:
    """
    Return cached pipeline settings from environment variables.
    """

    return PipelineSettings(
        pipeline_name=_get_str_env("PIPELINE_NAME", "batch_sales_pipeline"),
        batch_size=max(1, _get_int_env("PIPELINE_BATCH_SIZE", 1000)),
        max_retries=max(1, _get_int_env("PIPELINE_MAX_RETRIES", 3)),
        retry_delay_seconds=max(0.0, _get_float_env("PIPELINE_RETRY_DELAY_SECONDS", 1.0)),
        max_reported_rejections=max(0, _get_int_env("PIPELINE_MAX_REPORTED_REJECTIONS", 500)),
        log_rejections=_get_bool_env("PIPELINE_LOG_REJECTIONS", True),
    )


# ---------------------------------------------------------------------------
# Data quality
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DataQualitySettings:
    window_days: int = 7
    schedule_enabled: bool = True
    schedule_hour: int = 1
    schedule_minute: int = 0


@lru_cache(maxsize=1)
def get_data_quality_settings() -> DataQualitySettings:
    """
    Return cached data-quality settings from environment variables.
    """

    return DataQualitySettings(
        window_days=max(1, _get_int_env("DATA_QUALITY_WINDOW_DAYS", 7)),
        schedule_enabled=_get_bool_env("DATA_QUALITY_SCHEDULE_ENABLED", True),
        schedule_hour=min(23, max(0, _get_int_env("DATA_QUALITY_SCHEDULE_HOUR", 1))),
        schedule_minute=min(59, max(0, _get_int_env("DATA_QUALITY_SCHEDULE_MINUTE", 0))),
    )


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthSettings:
    """
    API keys mapped to roles.
    """

    api_keys: dict[str, str] = field(default_factory=dict)

    def role_for(self, api_key: str | None) -> str | None:
        if not api_key:
            return None
        return self.api_keys.get(api_key.strip())


def parse_api_keys(raw: str) -> dict[str, str]:
    """
    Parse ``API_KEYS`` into a key-to-role mapping.

    Format: ``key:role,key:role`` (whitespace-tolerant, case-insensitive role).
    Malformed tokens and unknown roles are skipped with a WARNING log.
    """

    keys: dict[str, str] = {}
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        parts = token.rsplit(":", 1)
        if len(parts) != 2:
            logger.warning("API_KEYS: skipping malformed token")
            continue
        key, role = parts[0].strip(), parts[1].strip().lower()
        if not key:
            logger.warning("API_KEYS: skipping token with empty key")
            continue
        if role not in ROLE_PERMISSIONS:
            logger.warning("API_KEYS: skipping key with unknown role %r", role)
            continue
        keys[key] = role
    return keys


@lru_cache(maxsize=1)
def get_auth_settings() -> AuthSettings:
    """
    Return cached API-key settings from environment variables.
    """

    return AuthSettings(api_keys=parse_api_keys(_get_str_env("API_KEYS", "")))
