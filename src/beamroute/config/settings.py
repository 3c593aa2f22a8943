# src/beamroute/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/beamroute/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `BEAMROUTE_BEAM_WIDTH`, `BEAMROUTE_LOG_LEVEL`)
- an external YAML file via `BEAMROUTE_CONFIG_PATH`

Design rule:
- Search knobs (beam width, step budget, workers) live in YAML, not in the solver.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from beamroute.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `beamroute.config`."""
    text = resources.files("beamroute.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "BeamRoute"
    log_level: str = "INFO"


class SearchSettings(BaseModel):
    beam_width: int = Field(100, ge=1)
    max_steps: int | None = Field(default=None, ge=1)
    workers: int = Field(1, ge=1)


class DataSettings(BaseModel):
    roads_path: str = "data/nodes.csv"
    agents_path: str = "data/taxis.csv"
    destination_path: str = "data/client.csv"
    delimiter: str = Field(",", min_length=1, max_length=1)
    has_header: bool = True


class OutputSettings(BaseModel):
    report_path: str = "out/routes.json"
    indent: int | None = Field(default=2, ge=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    data: DataSettings = Field(default_factory=DataSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small; everything else goes through YAML.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("BEAMROUTE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    beam_width = os.getenv("BEAMROUTE_BEAM_WIDTH")
    if beam_width:
        data.setdefault("search", {})["beam_width"] = beam_width

    workers = os.getenv("BEAMROUTE_WORKERS")
    if workers:
        data.setdefault("search", {})["workers"] = workers

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("BEAMROUTE_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
