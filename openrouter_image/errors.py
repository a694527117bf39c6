"""Exceptions raised by the image tools."""

from __future__ import annotations


class ImageToolError(Exception):
    """Base class for errors surfaced to MCP callers."""


class ConfigError(ImageToolError):
    """Required configuration is missing or invalid."""


class UsageError(ImageToolError):
    """The caller invoked a tool with unusable arguments."""


class TransportError(ImageToolError):
    """The upstream request could not be sent or timed out."""


class UpstreamHttpError(ImageToolError):
    """The upstream endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(
            f"Upstream request failed with status {status_code}: {body}"
        )
        self.status_code = status_code
        self.body = body


class UpstreamError(ImageToolError):
    """The upstream reply carried an ``error`` object."""


class MalformedResponse(ImageToolError):
    """The upstream reply matched none of the known envelopes."""


class InputUnrecognized(ImageToolError):
    """An edit input is neither a URL, a data URI nor a readable file."""


class PersistenceFailure(ImageToolError):
    """A single image could not be decoded, fetched or written."""
