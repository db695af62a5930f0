"""Configuration management for the cold-start benchmark monitor."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError

DEFAULT_CONFIG_PATH = "config/coldstart.yaml"

# Output field -> dotted key inside the JSON payload of a data endpoint.
# start-render-time is never read from the payload: it is the measured TTFB.
DEFAULT_PAYLOAD_FIELDS: dict[str, str] = {
    "cold-start-indicator": "coldStart",
    "request-count": "requestCount",
    "instance-age": "instanceAge",
    "page-processing-time": "pageProcessingTime",
    "initialized-from": "initializedFrom",
}


class EndpointPath(BaseModel):
    """A relative route probed on every backend."""
    path: str = Field(description="Route relative to the backend origin")
    data: bool = Field(default=False, description="Route returns a JSON payload instead of a page")

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        value = str(value or "").strip()
        if not value:
            raise ValueError("path must not be empty")
        if "://" in value:
            raise ValueError(f"path must be relative, got {value!r}")
        return value if value.startswith("/") else "/" + value


class BrowserConfig(BaseModel):
    """Chromium launch settings."""
    headless: bool = Field(default=True, description="Run browser in headless mode")
    executable_path: Optional[str] = Field(default=None, description="Chromium binary override")
    viewport_width: int = Field(default=1280, ge=320)
    viewport_height: int = Field(default=720, ge=240)


class BenchmarkConfig(BaseModel):
    """Main configuration for the benchmark monitor."""

    backends: list[str] = Field(default_factory=list, description="Ordered backend origins")
    paths: list[EndpointPath] = Field(default_factory=list, description="Ordered routes to probe")

    results_file: str = Field(default="results.csv", description="CSV result log")

    inter_probe_delay_seconds: float = Field(default=20.0, ge=0, description="Pause between probes")
    settle_delay_seconds: float = Field(default=5.0, ge=0, description="Wait after page load before reading")
    iteration_interval_seconds: float = Field(default=3600.0, gt=0, description="Time between iteration starts")
    navigation_timeout_seconds: float = Field(default=30.0, gt=0)
    data_capture_timeout_seconds: float = Field(default=30.0, gt=0)

    payload_fields: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PAYLOAD_FIELDS))

    log_level: str = Field(default="INFO", description="Logging level")
    browser: BrowserConfig = Field(default_factory=BrowserConfig)

    @field_validator("backends")
    @classmethod
    def _normalize_backends(cls, value: list[str]) -> list[str]:
        out: list[str] = []
        for idx, raw in enumerate(value):
            backend = str(raw or "").strip().rstrip("/")
            if not backend:
                raise ValueError(f"backends[{idx}] is empty")
            if not backend.startswith(("http://", "https://")):
                raise ValueError(f"backends[{idx}] must be an http(s) origin, got {raw!r}")
            if backend in out:
                raise ValueError(f"duplicate backend {backend!r}")
            out.append(backend)
        return out

    @field_validator("paths", mode="before")
    @classmethod
    def _coerce_paths(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [{"path": item} if isinstance(item, str) else item for item in value]

    @field_validator("paths")
    @classmethod
    def _unique_paths(cls, value: list[EndpointPath]) -> list[EndpointPath]:
        seen: set[str] = set()
        for endpoint in value:
            if endpoint.path in seen:
                raise ValueError(f"duplicate path {endpoint.path!r}")
            seen.add(endpoint.path)
        return value

    @field_validator("payload_fields")
    @classmethod
    def _known_payload_fields(cls, value: dict[str, str]) -> dict[str, str]:
        unknown = sorted(set(value) - set(DEFAULT_PAYLOAD_FIELDS))
        if unknown:
            raise ValueError(f"unknown payload fields: {unknown}")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return str(value or "INFO").strip().upper()

    @model_validator(mode="after")
    def _require_endpoints(self) -> "BenchmarkConfig":
        if not self.backends:
            raise ValueError("config must contain a non-empty 'backends' list")
        if not self.paths:
            raise ValueError("config must contain a non-empty 'paths' list")
        return self

    @property
    def path_names(self) -> list[str]:
        return [endpoint.path for endpoint in self.paths]


def load_config(config_path: Optional[str | Path] = None) -> BenchmarkConfig:
    """Load configuration from a YAML file plus environment overrides."""
    if config_path is None:
        config_path = os.getenv("COLDSTART_CONFIG", DEFAULT_CONFIG_PATH)
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Error parsing config file {config_path}: {exc}") from exc

    if not isinstance(config_data, dict):
        raise ConfigError("Config YAML must be a mapping")

    env_overrides = {
        "results_file": os.getenv("COLDSTART_RESULTS_FILE"),
        "iteration_interval_seconds": os.getenv("COLDSTART_INTERVAL_SECONDS"),
        "inter_probe_delay_seconds": os.getenv("COLDSTART_PROBE_DELAY_SECONDS"),
        "log_level": os.getenv("LOG_LEVEL"),
    }
    for key, value in env_overrides.items():
        if value is not None and value.strip():
            config_data[key] = value.strip()

    headless = os.getenv("BROWSER_HEADLESS")
    if headless is not None and headless.strip():
        browser_data = config_data.get("browser") or {}
        if not isinstance(browser_data, dict):
            raise ConfigError("'browser' must be a mapping")
        browser_data["headless"] = headless.strip().lower() in ("true", "1", "yes")
        config_data["browser"] = browser_data

    try:
        return BenchmarkConfig(**config_data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {config_path}:\n{exc}") from exc
