"""Data models shared across the image pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class ImageDescriptor:
    """One image discovered in an upstream reply."""

    source_url: str
    mime_hint: Optional[str] = None

    @property
    def is_data_uri(self) -> bool:
        return self.source_url.startswith("data:")


class ImageKind(Enum):
    URL = "url"
    BASE64 = "base64"
    LOCAL_FILE_RESOLVED = "local_file_resolved"


@dataclass
class ClassifiedImageInput:
    """Caller-supplied image reference after classification."""

    kind: ImageKind
    payload: str
    resolved_path: Optional[Path] = None


@dataclass
class SavedImageInfo:
    """Outcome of persisting one ImageDescriptor."""

    source_preview: str
    saved_path: Optional[Path] = None
    diagnostic: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.saved_path is not None


@dataclass
class NormalizedResponse:
    """Canonical text and images extracted from an upstream reply."""

    text: str
    images: List[ImageDescriptor] = field(default_factory=list)


@dataclass
class UsageStats:
    """Token usage reported by the upstream endpoint."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
