from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the contact upload dispatcher.

Values are produced by `task_dispatch.config.loader.load_config` after the YAML
document has passed JSON schema validation, so defaults here only matter for
programmatic construction (tests, dry runs).
"""

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5MB


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class UploadLimits:
    """Pre-parse acceptance rules for an uploaded document."""
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    allowed_extensions: tuple[str, ...] = (".csv", ".xlsx")


@dataclass(frozen=True)
class DryRunWorker:
    id: str
    name: str
    email: str
    active: bool = True


@dataclass(frozen=True)
class DispatchConfig:
    """Root configuration object for the upload pipeline."""
    staging_directory: str  # multer 相当の一時保存先
    upload: UploadLimits = field(default_factory=UploadLimits)
    distribution_policy: str = "round_robin"  # round_robin | balanced
    task_priority: str = "medium"
    preview_limit: int = 3  # 担当者ごとのプレビュー件数上限
    timezone: str = "UTC"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    dry_run_workers: tuple[DryRunWorker, ...] = ()
