"""Configuration objects and constants for the image server."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger("openrouter_image.config")

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL_ID = "google/gemini-2.5-flash-image-preview"
DEFAULT_HTTP_REFERER = "http://localhost:3000"
DEFAULT_X_TITLE = "OpenRouter Image MCP Server"
DEFAULT_SAVE_DIRECTORY = "images"
DEFAULT_HTTP_PORT = 6621
DEFAULT_REQUEST_TIMEOUT = 300.0
TRANSPORTS = ("stdio", "sse", "streamable-http")


@dataclass
class ServerConfig:
    """Settings for the upstream endpoint and the MCP transport."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL_ID
    http_referer: str = DEFAULT_HTTP_REFERER
    x_title: str = DEFAULT_X_TITLE
    save_directory: Path = Path(DEFAULT_SAVE_DIRECTORY)
    transport: str = "stdio"
    host: str = "127.0.0.1"
    http_port: int = DEFAULT_HTTP_PORT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @property
    def completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"

    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.http_referer,
            "X-Title": self.x_title,
            "Content-Type": "application/json",
        }


def _parse_number(raw: Optional[str], default, cast, name: str):
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def load_config(
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    save_directory: Optional[str] = None,
    transport: Optional[str] = None,
    port: Optional[int] = None,
    env: Optional[Mapping[str, str]] = None,
    dotenv: bool = True,
) -> ServerConfig:
    """Resolve settings from explicit arguments, then the environment.

    A ``.env`` file in the working directory is loaded first when ``dotenv``
    is set; it never overrides variables that are already exported.
    """
    if dotenv:
        load_dotenv()
    source = os.environ if env is None else env

    resolved_key = api_key or source.get("OPENROUTER_API_KEY")
    if not resolved_key:
        raise ConfigError(
            "An API key is required: pass --api-key or set OPENROUTER_API_KEY"
        )

    resolved_transport = transport or source.get("MCP_TRANSPORT") or "stdio"
    if resolved_transport not in TRANSPORTS:
        raise ConfigError(
            f"Unknown transport {resolved_transport!r}; expected one of {', '.join(TRANSPORTS)}"
        )

    http_port = port
    if http_port is None:
        http_port = _parse_number(
            source.get("MCP_HTTP_PORT"), DEFAULT_HTTP_PORT, int, "MCP_HTTP_PORT"
        )

    return ServerConfig(
        api_key=resolved_key,
        base_url=source.get("OPENROUTER_BASE_URL") or DEFAULT_BASE_URL,
        model=model or source.get("MCP_MODEL") or DEFAULT_MODEL_ID,
        http_referer=source.get("HTTP_REFERER") or DEFAULT_HTTP_REFERER,
        x_title=source.get("X_TITLE") or DEFAULT_X_TITLE,
        save_directory=Path(
            save_directory or source.get("MCP_SAVE_DIR") or DEFAULT_SAVE_DIRECTORY
        ).expanduser(),
        transport=resolved_transport,
        host=source.get("MCP_HOST") or "127.0.0.1",
        http_port=http_port,
        request_timeout=_parse_number(
            source.get("MCP_REQUEST_TIMEOUT"),
            DEFAULT_REQUEST_TIMEOUT,
            float,
            "MCP_REQUEST_TIMEOUT",
        ),
    )
