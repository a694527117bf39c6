"""Extraction of inline base64 images embedded in Markdown text."""

from __future__ import annotations

from typing import List, Optional, Tuple

IMAGE_MARKER = "!["
LINK_OPEN = "]("
DATA_IMAGE_PREFIX = "data:image/"


def _find_closing_paren(text: str, start: int) -> int:
    """Return the index of the first ``)`` not escaped with a backslash."""
    index = text.find(")", start)
    while index != -1 and index > start and text[index - 1] == "\\":
        index = text.find(")", index + 1)
    return index


def extract_markdown_images(text: str) -> Tuple[str, List[str]]:
    """Strip ``![alt](data:image/...)`` spans from text and return their URIs.

    The scan moves a single cursor forward. A ``![`` that does not open a
    complete data-image link is kept as plain text and skipped, so malformed
    or unbalanced brackets cannot stall the scan. The returned text is
    stripped of surrounding whitespace; images keep their order of appearance.
    """
    if not text:
        return "", []

    pieces: List[str] = []
    images: List[str] = []
    cursor = 0
    link_open: Optional[int] = None

    while True:
        start = text.find(IMAGE_MARKER, cursor)
        if start == -1:
            pieces.append(text[cursor:])
            break
        pieces.append(text[cursor:start])

        label_start = start + len(IMAGE_MARKER)
        if link_open is None or link_open < label_start:
            link_open = text.find(LINK_OPEN, label_start)
        if link_open == -1:
            # No link opener anywhere ahead: nothing else can match.
            pieces.append(text[start:])
            break

        uri_start = link_open + len(LINK_OPEN)
        nested = text.find(IMAGE_MARKER, label_start, link_open)
        close = -1
        if nested == -1 and text.startswith(DATA_IMAGE_PREFIX, uri_start):
            close = _find_closing_paren(text, uri_start)

        if close == -1:
            pieces.append(IMAGE_MARKER)
            cursor = label_start
            continue

        images.append(text[uri_start:close])
        cursor = close + 1

    return "".join(pieces).strip(), images
