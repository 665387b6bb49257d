"""Configuration helpers for environment-backed runtime settings."""

from __future__ import annotations

from dataclasses import dataclass
import os


def _get_env(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _get_env_int(name: str, default: int) -> int:
    value = _get_env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as err:
        raise ValueError(f"{name} must be an integer, got {value!r}") from err


def _get_env_float(name: str, default: float) -> float:
    value = _get_env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as err:
        raise ValueError(f"{name} must be a number, got {value!r}") from err


@dataclass(frozen=True)
class EnginePolicy:
    """Bounds and defaults shared by every component of one execution."""

    max_tool_iterations: int = 10
    run_poll_timeout_s: float = 60.0
    run_poll_interval_s: float = 1.0
    max_vector_store_ids: int = 2
    interlocutor_model: str = "gpt-4o-mini"
    interlocutor_temperature: float = 0.7

    def __post_init__(self) -> None:
        if self.max_tool_iterations < 0:
            raise ValueError("max_tool_iterations must be >= 0")
        if self.run_poll_timeout_s <= 0:
            raise ValueError("run_poll_timeout_s must be > 0")
        if self.run_poll_interval_s < 0:
            raise ValueError("run_poll_interval_s must be >= 0")
        if self.max_vector_store_ids < 1:
            raise ValueError("max_vector_store_ids must be >= 1")


@dataclass(frozen=True)
class S3StorageConfig:
    """Resolved S3 storage settings from environment variables."""

    aws_access_key_id: str | None
    aws_secret_access_key: str | None
    bucket: str | None
    region: str | None = None


@dataclass(frozen=True)
class GCSStorageConfig:
    """Resolved GCS storage settings from environment variables."""

    project: str | None
    bucket: str | None
    creds_path: str | None


def load_engine_policy() -> EnginePolicy:
    """Load engine bounds from ``PARLEY_*`` environment variables."""
    defaults = EnginePolicy()
    return EnginePolicy(
        max_tool_iterations=_get_env_int("PARLEY_MAX_TOOL_ITERATIONS", defaults.max_tool_iterations),
        run_poll_timeout_s=_get_env_float("PARLEY_RUN_POLL_TIMEOUT", defaults.run_poll_timeout_s),
        run_poll_interval_s=_get_env_float("PARLEY_RUN_POLL_INTERVAL", defaults.run_poll_interval_s),
        max_vector_store_ids=_get_env_int("PARLEY_MAX_VECTOR_STORE_IDS", defaults.max_vector_store_ids),
        interlocutor_model=_get_env("PARLEY_INTERLOCUTOR_MODEL") or defaults.interlocutor_model,
        interlocutor_temperature=_get_env_float(
            "PARLEY_INTERLOCUTOR_TEMPERATURE", defaults.interlocutor_temperature
        ),
    )


def load_s3_storage_config() -> S3StorageConfig:
    """Load S3 config from environment variables."""

    return S3StorageConfig(
        aws_access_key_id=_get_env("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=_get_env("AWS_SECRET_ACCESS_KEY"),
        bucket=_get_env("S3_BUCKET"),
        region=_get_env("AWS_REGION") or _get_env("AWS_DEFAULT_REGION"),
    )


def load_gcs_storage_config() -> GCSStorageConfig:
    """Load GCS config from environment variables."""

    return GCSStorageConfig(
        project=_get_env("GCS_PROJECT"),
        bucket=_get_env("GCS_BUCKET"),
        creds_path=_get_env("GCS_CREDS_PATH"),
    )


def load_results_dir() -> str:
    """Default local directory for persisted conversation results."""
    return _get_env("PARLEY_RESULTS_DIR") or "results"
