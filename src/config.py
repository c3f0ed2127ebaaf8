"""Workspace configuration.

Values come from dataclass defaults, then ``<repo>/.sprintctl/config.yaml``,
then ``SPRINTCTL_*`` environment variables. The resulting object is passed
explicitly to every service.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from src.workflow.exceptions import ConfigError

CONFIG_RELATIVE_PATH = Path(".sprintctl") / "config.yaml"

_ENV_OVERRIDES = {
    "SPRINTCTL_LOG_LEVEL": "log_level",
    "SPRINTCTL_TIMEZONE": "timezone",
    "SPRINTCTL_LOG_FILE": "log_file",
}


@dataclass
class WorkspaceConfig:
    """Settings for one sprint workspace."""

    repo_path: Path = Path(".")
    log_level: str = "info"
    timezone: str = "UTC"
    default_duration: str = "2w"
    sprint_stem: str = "Sprint_"
    include_merge_commits: bool = False
    log_file: str | None = None

    @property
    def tzinfo(self) -> ZoneInfo:
        return _zone(self.timezone)


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone: {name!r}") from exc


def load_config(repo_path: Path | str, config_path: Path | str | None = None) -> WorkspaceConfig:
    """Load configuration for the repository at ``repo_path``."""
    repo_path = Path(repo_path)
    config = WorkspaceConfig(repo_path=repo_path)

    path = Path(config_path) if config_path else repo_path / CONFIG_RELATIVE_PATH
    if config_path and not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    if path.is_file():
        _apply(config, _read_yaml(path), source=str(path))

    env_values = {
        attr: os.environ[var] for var, attr in _ENV_OVERRIDES.items() if os.environ.get(var)
    }
    _apply(config, env_values, source="environment")

    _zone(config.timezone)
    return config


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _apply(config: WorkspaceConfig, values: dict, source: str) -> None:
    known = {f.name for f in fields(config)} - {"repo_path"}
    for key, value in values.items():
        if key not in known:
            raise ConfigError(f"Unknown config key {key!r} in {source}")
        if key == "include_merge_commits" and not isinstance(value, bool):
            raise ConfigError(f"{key} must be true or false in {source}")
        if key != "include_merge_commits" and value is not None:
            value = str(value)
        setattr(config, key, value)
