"""Configuration loading for repoviz (.repoviz.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

import yaml

CONFIG_FILENAME = ".repoviz.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class GitHubConfig:
    """GitHub REST API access settings."""

    api_url: str = "https://api.github.com"
    token: Optional[str] = None
    request_timeout: float = 30.0


@dataclass
class ExplainConfig:
    """AI explanation provider settings."""

    provider: str = "gemini"
    model: Optional[str] = None
    api_keys: Dict[str, str] = field(default_factory=dict)
    temperature: Optional[float] = 0.2
    request_timeout: float = 60.0

    def api_key_for(self, provider: str | None = None) -> Optional[str]:
        return self.api_keys.get(provider or self.provider)


@dataclass
class LayoutConfig:
    """Canvas and force-simulation parameters."""

    width: float = 960.0
    height: float = 600.0
    link_distance: float = 50.0
    charge_strength: float = -120.0
    alpha_min: float = 0.001
    velocity_decay: float = 0.4
    max_ticks: int = 600


@dataclass
class ServiceConfig:
    """Bind address for the proxy service."""

    host: str = "127.0.0.1"
    port: int = 3001


@dataclass
class RepoVizConfig:
    """Represents the high-level settings defined in .repoviz.yml."""

    root: Path
    github: GitHubConfig = field(default_factory=GitHubConfig)
    explain: ExplainConfig = field(default_factory=ExplainConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)


ENV_GITHUB_TOKEN_KEYS = ("REPOVIZ_GITHUB_TOKEN", "GITHUB_TOKEN")
ENV_PROVIDER_KEYS: Mapping[str, Sequence[str]] = {
    "gemini": ("REPOVIZ_GEMINI_API_KEY", "GEMINI_API_KEY"),
    "openai": ("REPOVIZ_OPENAI_API_KEY", "OPENAI_API_KEY"),
    "grok": ("REPOVIZ_XAI_API_KEY", "XAI_API_KEY"),
}


def load_config(config_path: Path, *, environ: Mapping[str, str] | None = None) -> RepoVizConfig:
    """Load configuration from disk, then apply credential overrides from the environment."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    config = RepoVizConfig(root=root)
    if config_file.exists():
        data = _read_config(config_file)
        if not isinstance(data, dict):
            raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
        _apply_github(config.github, _as_dict(data.get("github")))
        _apply_explain(config.explain, _as_dict(data.get("explain")))
        _apply_layout(config.layout, _as_dict(data.get("layout")))
        _apply_service(config.service, _as_dict(data.get("service")))

    if not config.github.token:
        config.github.token = _first_env_value(env, ENV_GITHUB_TOKEN_KEYS)
    for provider, keys in ENV_PROVIDER_KEYS.items():
        if provider not in config.explain.api_keys:
            value = _first_env_value(env, keys)
            if value:
                config.explain.api_keys[provider] = value
    return config


def _apply_github(target: GitHubConfig, data: Dict[str, Any]) -> None:
    api_url = _as_str(data.get("api_url"))
    if api_url:
        target.api_url = api_url.rstrip("/")
    target.token = _as_str(data.get("token")) or target.token
    timeout = _as_float(data.get("request_timeout"))
    if timeout is not None:
        target.request_timeout = timeout


def _apply_explain(target: ExplainConfig, data: Dict[str, Any]) -> None:
    provider = _as_str(data.get("provider"))
    if provider:
        target.provider = provider.lower()
    target.model = _as_str(data.get("model")) or target.model
    for name, value in _as_dict(data.get("api_keys")).items():
        key = _as_str(value)
        if key:
            target.api_keys[str(name).lower()] = key
    if "temperature" in data:
        target.temperature = _as_float(data.get("temperature"))
    timeout = _as_float(data.get("request_timeout"))
    if timeout is not None:
        target.request_timeout = timeout


def _apply_layout(target: LayoutConfig, data: Dict[str, Any]) -> None:
    for name in ("width", "height", "link_distance", "charge_strength", "alpha_min", "velocity_decay"):
        value = _as_float(data.get(name))
        if value is not None:
            setattr(target, name, value)
    max_ticks = _as_int(data.get("max_ticks"))
    if max_ticks is not None:
        if max_ticks <= 0:
            raise ConfigError("layout.max_ticks must be positive")
        target.max_ticks = max_ticks
    if target.width <= 0 or target.height <= 0:
        raise ConfigError("layout.width and layout.height must be positive")


def _apply_service(target: ServiceConfig, data: Dict[str, Any]) -> None:
    target.host = _as_str(data.get("host")) or target.host
    port = _as_int(data.get("port"))
    if port is not None:
        target.port = port


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _first_env_value(env: Mapping[str, str], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = env.get(key)
        if value:
            return value
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None
