"""MCP server exposing the image generation and editing tools."""

from __future__ import annotations

import logging
from typing import List, Optional

import requests
from mcp.server.fastmcp import FastMCP

from .client import UpstreamClient
from .config import ServerConfig
from .service import ImageService
from .state import SaveDirectory

logger = logging.getLogger("openrouter_image.mcp")

mcp = FastMCP(name="openrouter-image")

_service: Optional[ImageService] = None


def configure(
    config: ServerConfig,
    session: Optional[requests.Session] = None,
) -> ImageService:
    """Bind the tools to a configured service instance."""
    global _service
    save_directory = SaveDirectory(config.save_directory)
    _service = ImageService(UpstreamClient(config, session), save_directory)
    logger.info(
        "Image tools configured (model=%s, save_directory=%s)",
        config.model,
        save_directory.get(),
    )
    return _service


def _require_service() -> ImageService:
    if _service is None:
        raise RuntimeError("The image server has not been configured")
    return _service


@mcp.tool()
async def generate_image(prompt: str) -> str:
    """Generate images from a text prompt and save them to the save directory."""
    return await _require_service().generate_image(prompt)


@mcp.tool()
async def edit_image(instruction: str, images: List[str]) -> str:
    """Edit or analyse one or more images with the image model.

    Each image may be 1) an http(s) URL, 2) a base64 data URI
    (data:image/...;base64,...) or 3) a local file path. Bare file names are
    also looked up in the save directory.
    """
    return await _require_service().edit_image(instruction, images)


@mcp.tool()
async def get_save_directory() -> str:
    """Return the directory generated images are written to."""
    return str(_require_service().save_directory.get())


@mcp.tool()
async def set_save_directory(path: str) -> str:
    """Change the directory generated images are written to."""
    save_directory = _require_service().save_directory
    try:
        candidate = save_directory.normalize(path)
        candidate.mkdir(parents=True, exist_ok=True)
    except (OSError, RuntimeError, ValueError) as exc:
        raise RuntimeError(f"Cannot use save directory {path!r}: {exc}") from exc
    resolved = save_directory.set(candidate)
    return f"Save directory set to {resolved}"


def run_server(config: ServerConfig) -> None:
    """Configure the tools and serve on the configured transport."""
    configure(config)
    if config.transport != "stdio":
        mcp.settings.host = config.host
        mcp.settings.port = config.http_port
        logger.info(
            "Serving %s on http://%s:%d", config.transport, config.host, config.http_port
        )
    mcp.run(transport=config.transport)
