"""Utility helpers for filename normalization."""

from __future__ import annotations

import re
from pathlib import PureWindowsPath

FILENAME_PATTERN = re.compile(r"[^\w.-]+", re.UNICODE)


def safe_filename(value: str, fallback: str = "image") -> str:
    """Collapse characters that are unsafe in filenames into underscores."""
    normalized = FILENAME_PATTERN.sub("_", value.strip()).strip("._")
    return normalized[:80] or fallback


def filename_stem(reference: str) -> str:
    """Return the filename of a local path without its extension.

    Both ``/`` and ``\\`` separators are accepted so Windows paths passed
    to a POSIX server still yield their basename.
    """
    return safe_filename(PureWindowsPath(reference.strip()).stem)
