"""Normalization of upstream chat-completion replies into text and images.

Providers disagree on the reply shape. OpenAI-style replies carry
``choices[0].message``; Gemini-style replies carry ``candidates[0].content``.
Images may arrive as typed ``image_url`` parts, as a sibling ``images`` array
on the message, as Markdown data URIs inside the text, or as a top-level
``data`` array in the images-endpoint style. Every shape lands in one
ordered list of ``ImageDescriptor`` objects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import MalformedResponse, UpstreamError
from .markdown import extract_markdown_images
from .models import ImageDescriptor, NormalizedResponse, UsageStats

logger = logging.getLogger("openrouter_image.normalize")

NO_CONTENT_TEXT = "(no content)"
UNKNOWN_ERROR = "unknown error"


@dataclass
class _Collector:
    texts: List[str] = field(default_factory=list)
    images: List[ImageDescriptor] = field(default_factory=list)

    def add_text(self, text: str) -> None:
        cleaned, embedded = extract_markdown_images(text)
        if cleaned:
            self.texts.append(cleaned)
        for uri in embedded:
            self.add_image(uri)

    def add_image(self, source: Any) -> None:
        descriptor = descriptor_from(source)
        if not descriptor.source_url:
            logger.debug("Image entry without a usable URL: %r", source)
        self.images.append(descriptor)


def data_uri_mime(uri: str) -> Optional[str]:
    """Return the MIME type of a ``data:`` URI, if it declares one."""
    if not uri.startswith("data:"):
        return None
    header = uri[len("data:"):].split(",", 1)[0]
    mime = header.split(";", 1)[0].strip()
    return mime or None


def descriptor_from(source: Any) -> ImageDescriptor:
    """Build a descriptor from a URL string or an ``image_url`` object.

    Entries without a usable URL keep an empty source so they are still
    counted and later reported as not saved.
    """
    if isinstance(source, dict):
        source = source.get("url")
    if not isinstance(source, str) or not source.strip():
        return ImageDescriptor(source_url="")
    url = source.strip()
    return ImageDescriptor(source_url=url, mime_hint=data_uri_mime(url))


def _check_error(reply: Dict[str, Any]) -> None:
    if "error" not in reply:
        return
    error = reply["error"]
    message = None
    if isinstance(error, dict):
        message = error.get("message")
    elif isinstance(error, str):
        message = error
    raise UpstreamError(f"Upstream API returned an error: {message or UNKNOWN_ERROR}")


def _first_nested(reply: Dict[str, Any], key: str, nested: str) -> Optional[Any]:
    """Return ``reply[key][0][nested]``; ``None`` when ``key`` is absent."""
    entries = reply.get(key)
    if not isinstance(entries, list):
        return None
    if not entries:
        raise MalformedResponse(f"Upstream reply has an empty '{key}' array")
    first = entries[0]
    if not isinstance(first, dict) or not isinstance(first.get(nested), dict):
        raise MalformedResponse(f"Upstream reply is missing {key}[0].{nested}")
    return first[nested]


_ENVELOPES: Tuple[Tuple[str, str], ...] = (
    ("choices", "message"),
    ("candidates", "content"),
)


def _locate_message(reply: Dict[str, Any]) -> Dict[str, Any]:
    for key, nested in _ENVELOPES:
        message = _first_nested(reply, key, nested)
        if message is not None:
            return message
    raise MalformedResponse("Upstream reply has neither 'choices' nor 'candidates'")


def _select_content(message: Dict[str, Any]) -> Any:
    if message.get("content") is not None:
        return message["content"]
    if message.get("parts") is not None:
        return message["parts"]
    return message


def _parse_text_content(content: str, collector: _Collector) -> None:
    collector.add_text(content)


def _parse_inline_data(part: Dict[str, Any], collector: _Collector) -> None:
    inline = part.get("inline_data") or part.get("inlineData")
    if not isinstance(inline, dict) or not inline.get("data"):
        return
    mime = inline.get("mime_type") or inline.get("mimeType") or "image/png"
    if not str(mime).startswith("image/"):
        return
    collector.add_image(f"data:{mime};base64,{inline['data']}")


def _parse_parts(parts: List[Any], collector: _Collector) -> None:
    for part in parts:
        if not isinstance(part, dict):
            continue
        part_type = part.get("type")
        if part_type == "text":
            text = part.get("text")
            if isinstance(text, str):
                collector.add_text(text)
        elif part_type == "image_url":
            collector.add_image(part.get("image_url"))
        elif part_type is None and ("inline_data" in part or "inlineData" in part):
            _parse_inline_data(part, collector)


_CONTENT_PARSERS: Tuple[Tuple[type, Callable[[Any, _Collector], None]], ...] = (
    (str, _parse_text_content),
    (list, _parse_parts),
)


def _scan_sibling_images(message: Dict[str, Any], collector: _Collector) -> None:
    images = message.get("images")
    if not isinstance(images, list):
        return
    for entry in images:
        if isinstance(entry, dict) and "image_url" in entry:
            collector.add_image(entry["image_url"])


def _scan_data_array(reply: Dict[str, Any], collector: _Collector) -> None:
    data = reply.get("data")
    if not isinstance(data, list):
        return
    for entry in data:
        if not isinstance(entry, dict):
            continue
        if entry.get("b64_json"):
            collector.add_image(f"data:image/png;base64,{entry['b64_json']}")
        elif entry.get("url"):
            collector.add_image(entry["url"])


def normalize_response(reply: Any) -> NormalizedResponse:
    """Reduce an upstream reply to its text and ordered image descriptors.

    Raises:
        UpstreamError: the reply carries an ``error`` object.
        MalformedResponse: no known envelope could be located.
    """
    if not isinstance(reply, dict):
        raise MalformedResponse(
            f"Upstream reply is not a JSON object: {type(reply).__name__}"
        )
    _check_error(reply)

    message = _locate_message(reply)
    collector = _Collector()

    content = _select_content(message)
    for content_type, parser in _CONTENT_PARSERS:
        if isinstance(content, content_type):
            parser(content, collector)
            break

    _scan_sibling_images(message, collector)
    if not collector.images:
        _scan_data_array(reply, collector)

    text = "\n".join(collector.texts) if collector.texts else NO_CONTENT_TEXT
    logger.debug(
        "Normalized reply: %d text fragment(s), %d image(s)",
        len(collector.texts),
        len(collector.images),
    )
    return NormalizedResponse(text=text, images=collector.images)


def extract_usage(reply: Any) -> Optional[UsageStats]:
    """Return token usage when all three counters are present."""
    if not isinstance(reply, dict):
        return None
    usage = reply.get("usage")
    if not isinstance(usage, dict):
        return None
    counters = [
        usage.get("prompt_tokens"),
        usage.get("completion_tokens"),
        usage.get("total_tokens"),
    ]
    if not all(isinstance(value, int) and not isinstance(value, bool) for value in counters):
        return None
    return UsageStats(*counters)
