# src/buffersearch/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/buffersearch/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `BUFFERSEARCH_BACKEND_URL`, `BUFFERSEARCH_API_KEY`)
- an external YAML file via `BUFFERSEARCH_CONFIG_PATH`

Design rule:
- Tuning knobs (buffer defaults, page size, target layer) live in YAML, not in the controller.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal
from buffersearch.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `buffersearch.config`."""
    text = resources.files("buffersearch.config").joinpath(filename).read_text(encoding="utf-8")
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
    name: str = "buffersearch"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class RetrySettings(BaseModel):
    max_attempts: int = Field(2, ge=0)
    base_delay_seconds: float = Field(0.5, ge=0)
    max_delay_seconds: float = Field(4.0, ge=0)


class BackendSettings(BaseModel):
    base_url: str
    query_path: str = "/api/feature/query"
    api_key: str | None = None
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @property
    def query_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.query_path.lstrip("/")


class LayerSettings(BaseModel):
    id: str
    geometry_field: str = "geom"
    crs: str = "EPSG:4326"


class BufferSettings(BaseModel):
    default_distance: float = Field(500, gt=0)
    default_unit: Literal["meters", "kilometers"] = "meters"
    segments: int = Field(64, ge=8, le=720)


class MapSettings(BaseModel):
    crs: str = "EPSG:4326"


class PresenterSettings(BaseModel):
    page_size: int = Field(20, ge=1, le=500)
    id_property: str = "id"


class HostSettings(BaseModel):
    plugin: str = "buffer-search"
    component: str = "BufferResults"


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    backend: BackendSettings
    layer: LayerSettings
    buffer: BufferSettings = Field(default_factory=BufferSettings)
    map: MapSettings = Field(default_factory=MapSettings)
    presenter: PresenterSettings = Field(default_factory=PresenterSettings)
    host: HostSettings = Field(default_factory=HostSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("BUFFERSEARCH_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    backend_url = os.getenv("BUFFERSEARCH_BACKEND_URL")
    if backend_url:
        data.setdefault("backend", {})["base_url"] = backend_url

    api_key = os.getenv("BUFFERSEARCH_API_KEY")
    if api_key:
        data.setdefault("backend", {})["api_key"] = api_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("BUFFERSEARCH_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
