"""Tests for repoviz.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from repoviz.config import ConfigError, RepoVizConfig, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path, environ={})

    assert isinstance(config, RepoVizConfig)
    assert config.root == tmp_path.resolve()
    assert config.github.api_url == "https://api.github.com"
    assert config.github.token is None
    assert config.explain.provider == "gemini"
    assert config.explain.api_keys == {}
    assert config.layout.width == 960.0
    assert config.layout.max_ticks == 600
    assert config.service.port == 3001


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".repoviz.yml"
    config_file.write_text(
        """
github:
  api_url: "https://ghe.example.com/api/v3/"
  token: "file-token"
  request_timeout: 15
explain:
  provider: "OpenAI"
  model: "gpt-4o"
  temperature: 0.4
  api_keys:
    openai: "sk-file"
layout:
  width: 1200
  height: 800
  charge_strength: -200
  max_ticks: 300
service:
  host: "0.0.0.0"
  port: 8080
""",
        encoding="utf-8",
    )

    config = load_config(config_file, environ={})

    assert config.github.api_url == "https://ghe.example.com/api/v3"
    assert config.github.token == "file-token"
    assert config.github.request_timeout == pytest.approx(15.0)
    assert config.explain.provider == "openai"
    assert config.explain.model == "gpt-4o"
    assert config.explain.temperature == pytest.approx(0.4)
    assert config.explain.api_key_for() == "sk-file"
    assert config.layout.width == 1200.0
    assert config.layout.charge_strength == -200.0
    assert config.layout.max_ticks == 300
    assert config.service.host == "0.0.0.0"
    assert config.service.port == 8080


def test_environment_supplies_missing_credentials(tmp_path: Path) -> None:
    (tmp_path / ".repoviz.yml").write_text(
        "explain:\n  api_keys:\n    gemini: from-file\n", encoding="utf-8"
    )
    environ = {
        "GITHUB_TOKEN": "gh-env",
        "REPOVIZ_GEMINI_API_KEY": "gemini-env",
        "XAI_API_KEY": "xai-env",
    }

    config = load_config(tmp_path, environ=environ)

    assert config.github.token == "gh-env"
    assert config.explain.api_keys["gemini"] == "from-file"
    assert config.explain.api_keys["grok"] == "xai-env"
    assert "openai" not in config.explain.api_keys


def test_prefixed_environment_variable_wins(tmp_path: Path) -> None:
    config = load_config(
        tmp_path, environ={"REPOVIZ_GITHUB_TOKEN": "prefixed", "GITHUB_TOKEN": "plain"}
    )

    assert config.github.token == "prefixed"


def test_invalid_layout_values_raise(tmp_path: Path) -> None:
    config_file = tmp_path / ".repoviz.yml"
    config_file.write_text("layout:\n  max_ticks: 0\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_file, environ={})

    config_file.write_text("layout:\n  width: -5\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(config_file, environ={})


def test_malformed_yaml_raises(tmp_path: Path) -> None:
    (tmp_path / ".repoviz.yml").write_text("github: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path, environ={})


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / ".repoviz.yml").write_text("\n", encoding="utf-8")

    config = load_config(tmp_path, environ={})

    assert config.layout.height == 600.0
