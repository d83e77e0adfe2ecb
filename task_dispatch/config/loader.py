from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator

from ..models.config_models import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DatabaseConfig,
    DispatchConfig,
    DryRunWorker,
    UploadLimits,
)

"""Config loader: config/dispatch.yml -> DispatchConfig.

The YAML document is checked against config_schema.json (shipped next to this
module) before any value is read; every schema violation is reported at once,
prefixed with its location. Optional sections fall back to the dataclass
defaults.
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/dispatch.yml")


class ConfigError(Exception):
    pass


def _schema_validator() -> Draft7Validator:
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    return Draft7Validator(schema)


def _check_schema(data: Mapping[str, Any]) -> None:
    problems = []
    for err in sorted(_schema_validator().iter_errors(data), key=lambda e: list(map(str, e.path))):
        where = ".".join(str(p) for p in err.path) or "<root>"
        problems.append(f"{where}: {err.message}")
    if problems:
        raise ConfigError("config validation failed: " + "; ".join(problems))


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    return data.get(name) or {}


def _upload_limits(raw: Mapping[str, Any]) -> UploadLimits:
    if "allowed_extensions" not in raw:
        return UploadLimits(max_bytes=raw.get("max_bytes", DEFAULT_MAX_UPLOAD_BYTES))
    return UploadLimits(
        max_bytes=raw.get("max_bytes", DEFAULT_MAX_UPLOAD_BYTES),
        allowed_extensions=tuple(raw["allowed_extensions"]),
    )


def _dry_run_worker(raw: Mapping[str, Any]) -> DryRunWorker:
    return DryRunWorker(
        id=str(raw["id"]),
        name=raw["name"],
        email=raw["email"],
        active=raw.get("active", True),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> DispatchConfig:
    """Read and validate the dispatcher config.

    Raises:
        ConfigError: missing file, unreadable YAML, non-mapping root, or any
            schema violation.
    """
    if not path.is_file():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    data = {} if data is None else data
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _check_schema(data)

    defaults = DispatchConfig(staging_directory=data["staging_directory"])
    return DispatchConfig(
        staging_directory=defaults.staging_directory,
        upload=_upload_limits(_section(data, "upload")),
        distribution_policy=_section(data, "distribution").get("policy", defaults.distribution_policy),
        task_priority=_section(data, "task").get("priority", defaults.task_priority),
        preview_limit=_section(data, "summary").get("preview_limit", defaults.preview_limit),
        timezone=data.get("timezone", defaults.timezone),
        database=DatabaseConfig(**_section(data, "database")),
        dry_run_workers=tuple(_dry_run_worker(w) for w in data.get("dry_run_workers", [])),
    )
