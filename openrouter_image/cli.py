"""Command-line entry point for the OpenRouter image MCP server."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from .config import DEFAULT_HTTP_PORT, TRANSPORTS, load_config
from .errors import ConfigError
from .mcp_server import run_server

logger = logging.getLogger("openrouter_image.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Serve image generation and editing tools over MCP, backed by an "
            "OpenAI-compatible chat/completions endpoint."
        ),
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="API key for the upstream endpoint (default: $OPENROUTER_API_KEY)",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Model identifier to request (default: $MCP_MODEL or a Gemini image model)",
    )
    parser.add_argument(
        "--save-dir",
        default=None,
        help="Directory where returned images are written (default: $MCP_SAVE_DIR or ./images)",
    )
    parser.add_argument(
        "--transport",
        choices=TRANSPORTS,
        default=None,
        help="MCP transport to serve (default: $MCP_TRANSPORT or stdio)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"HTTP port for sse/streamable-http (default: $MCP_HTTP_PORT or {DEFAULT_HTTP_PORT})",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging, including raw upstream replies",
    )
    argv = list(sys.argv[1:] if argv is None else argv)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    try:
        config = load_config(
            api_key=args.api_key,
            model=args.model,
            save_directory=args.save_dir,
            transport=args.transport,
            port=args.port,
        )
    except ConfigError as exc:
        logger.error("%s", exc)
        raise SystemExit(2) from exc

    logger.info("Starting image MCP server with model %s", config.model)
    run_server(config)


if __name__ == "__main__":
    main()
