"""Image decoding, downloading and persistence utilities."""

from __future__ import annotations

import asyncio
import base64
import binascii
import datetime as dt
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import requests
from filetype import guess

from .errors import PersistenceFailure
from .models import ImageDescriptor, SavedImageInfo
from .normalize import data_uri_mime
from .utils import safe_filename

logger = logging.getLogger("openrouter_image")

PREVIEW_CHARS = 50
DEFAULT_EXTENSION = "png"
FETCH_TIMEOUT = 15
MAX_COLLISION_RETRIES = 1000


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def infer_image_extension(content_type: Optional[str], data: bytes) -> str:
    """Pick a file extension from declared MIME metadata or the file signature."""
    if content_type:
        parts = content_type.split(";")[0].strip().split("/")
        if len(parts) == 2 and parts[0].lower() == "image" and parts[1]:
            ext = parts[1].strip().lower()
            if ext == "jpeg":
                ext = "jpg"
            elif ext == "svg+xml":
                ext = "svg"
            return ext
    return detect_image_format(data) or DEFAULT_EXTENSION


def decode_data_uri(uri: str) -> Tuple[Optional[str], bytes]:
    """Split a ``data:`` URI into its MIME type and decoded payload."""
    header, sep, payload = uri.partition(",")
    if not sep:
        raise PersistenceFailure("data URI has no payload separator")
    if ";base64" not in header:
        raise PersistenceFailure("data URI is not base64 encoded")
    compact = "".join(payload.split())
    try:
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PersistenceFailure(f"invalid base64 payload: {exc}") from exc
    if not data:
        raise PersistenceFailure("data URI payload is empty")
    return data_uri_mime(uri), data


def fetch_image(url: str, session: Optional[requests.Session] = None) -> Tuple[Optional[str], bytes]:
    """Download an image and return its Content-Type and body."""
    http = session or requests
    try:
        resp = http.get(url, timeout=FETCH_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise PersistenceFailure(f"download failed: {exc}") from exc
    if not resp.content:
        raise PersistenceFailure("download returned an empty body")
    return resp.headers.get("Content-Type"), resp.content


def load_image_bytes(
    descriptor: ImageDescriptor,
    session: Optional[requests.Session] = None,
) -> Tuple[Optional[str], bytes]:
    if not descriptor.source_url:
        raise PersistenceFailure("image entry has no URL")
    if descriptor.is_data_uri:
        mime, data = decode_data_uri(descriptor.source_url)
        return mime or descriptor.mime_hint, data
    if descriptor.source_url.startswith(("http://", "https://")):
        content_type, data = fetch_image(descriptor.source_url, session)
        return content_type or descriptor.mime_hint, data
    raise PersistenceFailure("unsupported image source")


def build_filename_stem(
    base_name: Optional[str],
    is_edit: bool,
    index: int,
    total: int,
    timestamp: str,
) -> str:
    """Name an output image; the index is appended only for multi-image batches."""
    if base_name:
        stem = safe_filename(base_name)
        if is_edit:
            stem = f"{stem}_edited"
    else:
        marker = "edited_image" if is_edit else "generated_image"
        stem = f"{marker}_{timestamp}"
    if total > 1:
        stem = f"{stem}_{index}"
    return stem


def write_unique(target_dir: Path, stem: str, extension: str, data: bytes) -> Path:
    """Write bytes under a name that does not exist yet.

    Files are created with exclusive mode, so two writers racing for the same
    name cannot both succeed; the loser retries with a numeric suffix.
    """
    target_dir.mkdir(parents=True, exist_ok=True)
    for attempt in range(MAX_COLLISION_RETRIES):
        name = f"{stem}.{extension}" if attempt == 0 else f"{stem}-{attempt}.{extension}"
        destination = target_dir / name
        try:
            with destination.open("xb") as handle:
                handle.write(data)
        except FileExistsError:
            continue
        return destination
    raise PersistenceFailure(f"no free filename for {stem}.{extension} in {target_dir}")


def save_image(
    descriptor: ImageDescriptor,
    target_dir: Path,
    stem: str,
    session: Optional[requests.Session] = None,
) -> SavedImageInfo:
    """Materialize one descriptor on disk; failures are recorded, not raised."""
    info = SavedImageInfo(source_preview=descriptor.source_url[:PREVIEW_CHARS])
    try:
        content_type, data = load_image_bytes(descriptor, session)
        extension = infer_image_extension(content_type, data)
        destination = write_unique(target_dir, stem, extension, data)
    except PersistenceFailure as exc:
        logger.warning("Image %s... not saved: %s", info.source_preview, exc)
        info.diagnostic = str(exc)
        return info
    except OSError as exc:
        logger.warning("Failed to write image into %s: %s", target_dir, exc)
        info.diagnostic = f"write failed: {exc}"
        return info

    info.saved_path = destination
    if destination.stem != stem:
        info.diagnostic = f"renamed to {destination.name} to avoid overwriting"
    logger.info("Saved image to %s", destination)
    return info


async def persist_images(
    images: Sequence[ImageDescriptor],
    target_dir: Path,
    base_name: Optional[str] = None,
    is_edit: bool = False,
    session: Optional[requests.Session] = None,
) -> List[SavedImageInfo]:
    """Save every descriptor into ``target_dir`` in order.

    One ``SavedImageInfo`` is returned per descriptor. Downloads and writes run
    in worker threads so the event loop keeps serving other tool calls.
    """
    if not images:
        return []
    timestamp = dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    total = len(images)
    results: List[SavedImageInfo] = []
    for index, descriptor in enumerate(images, start=1):
        stem = build_filename_stem(base_name, is_edit, index, total, timestamp)
        info = await asyncio.to_thread(save_image, descriptor, target_dir, stem, session)
        results.append(info)
    saved = sum(1 for info in results if info.saved)
    logger.debug("Persisted %d/%d image(s) into %s", saved, total, target_dir)
    return results
