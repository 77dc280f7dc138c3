"""Configuration loading and runtime directory bootstrapping."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "paths": {
        "data_dir": "data",
        "db_path": "data/streaks.db",
        "activity_log_path": "logs/activity.jsonl",
    },
    "tracker": {
        "default_topic": "Swift",
        "default_duration": "Week",
        "tick_interval_seconds": 60,
        "grace_period_hours": 32,
    },
    "logging": {"level": "WARNING"},
}


def load_yaml(path: Path) -> dict[str, Any]:
    """Read one config file; a missing file is an empty mapping."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Config file is not valid YAML: {path}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def overlay_config(base: dict[str, Any], *layers: dict[str, Any]) -> dict[str, Any]:
    """Deep-copy ``base`` and apply each layer on top; nested sections merge key by key."""
    result = copy.deepcopy(base)
    for layer in layers:
        _overlay_into(result, layer)
    return result


def _overlay_into(target: dict[str, Any], layer: dict[str, Any]) -> None:
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _overlay_into(current, value)
        else:
            target[key] = copy.deepcopy(value)


def ensure_runtime_dirs(root: Path, config: dict[str, Any]) -> dict[str, Path]:
    """Ensure data and log directories exist and return resolved paths."""
    paths_cfg = config.get("paths", {})
    data_dir = (root / paths_cfg.get("data_dir", "data")).resolve()
    db_path = (root / paths_cfg.get("db_path", "data/streaks.db")).resolve()
    activity_log_path = (root / paths_cfg.get("activity_log_path", "logs/activity.jsonl")).resolve()

    data_dir.mkdir(parents=True, exist_ok=True)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    activity_log_path.parent.mkdir(parents=True, exist_ok=True)

    return {
        "data_dir": data_dir,
        "db_path": db_path,
        "activity_log_path": activity_log_path,
    }


def load_effective_config(root: Path) -> dict[str, Any]:
    """Merge built-in defaults, config/default.yaml and config/local.yaml."""
    config_dir = root / "config"
    return overlay_config(
        DEFAULT_CONFIG,
        load_yaml(config_dir / "default.yaml"),
        load_yaml(config_dir / "local.yaml"),
    )


def configure_logging(config: dict[str, Any]) -> None:
    """Apply the configured root log level once per process."""
    level_name = str(config.get("logging", {}).get("level", "WARNING")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
