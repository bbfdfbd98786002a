"""Configuration and runtime policy bootstrapping."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ExecutionCapabilities(BaseModel):
    """Scheduler limits read from the ``orchestrator`` config section."""

    max_parallel_actions: int = Field(default=3, ge=1)
    timeout_ms: int = Field(default=30000, gt=0)
    retry_attempts: int = Field(default=2, ge=0)
    rollback_enabled: bool = True
    progress_tracking: bool = True
    confidence_threshold: float | None = Field(default=0.4, ge=0.0, le=1.0)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> ExecutionCapabilities:
        section = config.get("orchestrator", {}) or {}
        known = {key: value for key, value in section.items() if key in cls.model_fields}
        return cls(**known)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_audit_path(root: Path, config: dict[str, Any]) -> Path | None:
    """Absolute audit log path, or ``None`` when auditing is disabled."""
    raw = (config.get("paths", {}) or {}).get("audit_log_path")
    if not raw:
        return None
    path = (root / raw).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def load_effective_config(root: Path) -> dict[str, Any]:
    """Load and merge ``default.yaml``, ``models.yaml`` and ``local.yaml``."""
    config_dir = root / "config"
    default_cfg = load_yaml(config_dir / "default.yaml")
    models_cfg = load_yaml(config_dir / "models.yaml")
    local_cfg = load_yaml(config_dir / "local.yaml")

    merged = merge_dicts(default_cfg, {"models": models_cfg}) if models_cfg else default_cfg
    return merge_dicts(merged, local_cfg)


def configure_logging(config: dict[str, Any], verbose: bool = False) -> None:
    """Configure the root logger once for entrypoints."""
    level_name = str((config.get("logging", {}) or {}).get("level", "WARNING")).upper()
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
