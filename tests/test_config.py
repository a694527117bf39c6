"""Configuration resolution tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from openrouter_image.config import (
    DEFAULT_BASE_URL,
    DEFAULT_HTTP_PORT,
    DEFAULT_MODEL_ID,
    load_config,
)
from openrouter_image.errors import ConfigError


def test_defaults_with_env_key() -> None:
    config = load_config(env={"OPENROUTER_API_KEY": "sk-env"}, dotenv=False)

    assert config.api_key == "sk-env"
    assert config.base_url == DEFAULT_BASE_URL
    assert config.model == DEFAULT_MODEL_ID
    assert config.http_port == DEFAULT_HTTP_PORT
    assert config.transport == "stdio"
    assert config.completions_url == "https://openrouter.ai/api/v1/chat/completions"


def test_arguments_override_environment() -> None:
    env = {
        "OPENROUTER_API_KEY": "sk-env",
        "MCP_MODEL": "env/model",
        "MCP_SAVE_DIR": "/env/dir",
        "MCP_HTTP_PORT": "7000",
    }

    config = load_config(
        api_key="sk-arg",
        model="arg/model",
        save_directory="/arg/dir",
        port=8000,
        env=env,
        dotenv=False,
    )

    assert config.api_key == "sk-arg"
    assert config.model == "arg/model"
    assert config.save_directory == Path("/arg/dir")
    assert config.http_port == 8000


def test_environment_values_are_used() -> None:
    env = {
        "OPENROUTER_API_KEY": "sk-env",
        "OPENROUTER_BASE_URL": "https://api.tu-zi.com/v1/",
        "MCP_MODEL": "nano-banana",
        "MCP_HTTP_PORT": "7000",
        "MCP_TRANSPORT": "sse",
    }

    config = load_config(env=env, dotenv=False)

    assert config.model == "nano-banana"
    assert config.http_port == 7000
    assert config.transport == "sse"
    assert config.completions_url == "https://api.tu-zi.com/v1/chat/completions"


def test_invalid_port_falls_back_to_default() -> None:
    env = {"OPENROUTER_API_KEY": "k", "MCP_HTTP_PORT": "not-a-port"}

    assert load_config(env=env, dotenv=False).http_port == DEFAULT_HTTP_PORT


def test_missing_key_raises() -> None:
    with pytest.raises(ConfigError, match="OPENROUTER_API_KEY"):
        load_config(env={}, dotenv=False)


def test_unknown_transport_raises() -> None:
    with pytest.raises(ConfigError):
        load_config(api_key="k", transport="carrier-pigeon", env={}, dotenv=False)


def test_headers_carry_bearer_key() -> None:
    config = load_config(api_key="sk-test", env={}, dotenv=False)

    headers = config.headers()

    assert headers["Authorization"] == "Bearer sk-test"
    assert headers["Content-Type"] == "application/json"
    assert "HTTP-Referer" in headers and "X-Title" in headers
