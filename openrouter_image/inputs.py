"""Classification of caller-supplied image references for edit requests."""

from __future__ import annotations

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple

from filetype import guess

from .errors import InputUnrecognized
from .models import ClassifiedImageInput, ImageKind
from .utils import filename_stem

logger = logging.getLogger("openrouter_image.inputs")

URL_PREFIXES = ("http://", "https://")
DATA_URI_PREFIX = "data:image/"
DEFAULT_IMAGE_MIME = "image/png"
PROBE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp")

Resolver = Callable[[str, Path], Optional[Path]]


def is_remote_or_inline(value: str) -> bool:
    return value.startswith(URL_PREFIXES) or value.startswith(DATA_URI_PREFIX)


def guess_image_mime(path: Path, data: bytes) -> str:
    """Sniff the MIME type from the bytes, falling back to the extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        return kind.mime
    guessed, _ = mimetypes.guess_type(path.name)
    if guessed and guessed.startswith("image/"):
        return guessed
    return DEFAULT_IMAGE_MIME


def encode_file_as_data_uri(path: Path) -> str:
    data = path.read_bytes()
    mime = guess_image_mime(path, data)
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def _direct_path(reference: str, save_dir: Path) -> Optional[Path]:
    candidate = Path(reference).expanduser()
    return candidate if candidate.is_file() else None


def _save_dir_relative(reference: str, save_dir: Path) -> Optional[Path]:
    candidates = [save_dir / reference]
    name = Path(reference).name
    if name and name != reference:
        candidates.append(save_dir / name)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _save_dir_extension_probe(reference: str, save_dir: Path) -> Optional[Path]:
    if Path(reference).suffix:
        return None
    for extension in PROBE_EXTENSIONS:
        candidate = save_dir / f"{reference}{extension}"
        if candidate.is_file():
            return candidate
    return None


RESOLUTION_STRATEGIES: Tuple[Tuple[Resolver, ImageKind], ...] = (
    (_direct_path, ImageKind.BASE64),
    (_save_dir_relative, ImageKind.LOCAL_FILE_RESOLVED),
    (_save_dir_extension_probe, ImageKind.LOCAL_FILE_RESOLVED),
)


def _resolve_local(reference: str, save_dir: Path) -> Optional[ClassifiedImageInput]:
    for resolver, kind in RESOLUTION_STRATEGIES:
        try:
            path = resolver(reference, save_dir)
        except (OSError, RuntimeError, ValueError) as exc:
            logger.debug("%s could not check %r: %s", resolver.__name__, reference, exc)
            continue
        if path is None:
            continue
        try:
            payload = encode_file_as_data_uri(path)
        except OSError as exc:
            logger.warning("Failed to read image file %s: %s", path, exc)
            continue
        logger.debug("Resolved %r to %s via %s", reference, path, resolver.__name__)
        return ClassifiedImageInput(kind=kind, payload=payload, resolved_path=path)
    return None


def classify_image_input(value: str, save_dir: Path) -> ClassifiedImageInput:
    """Classify one edit input as a URL, a data URI or a local file.

    Local references are tried as given, then relative to ``save_dir`` and
    finally, for bare names, with common image extensions appended.
    Raises ``InputUnrecognized`` once every strategy has failed.
    """
    reference = value.strip()
    if reference.startswith(URL_PREFIXES):
        return ClassifiedImageInput(kind=ImageKind.URL, payload=value)
    if reference.startswith(DATA_URI_PREFIX):
        return ClassifiedImageInput(kind=ImageKind.BASE64, payload=value)
    if reference:
        classified = _resolve_local(reference, save_dir)
        if classified is not None:
            return classified
    raise InputUnrecognized(
        f"Image input {value!r} is not a URL, a data URI or a readable file "
        f"(also searched {save_dir})"
    )


def derive_base_name(images: Sequence[str]) -> Optional[str]:
    """Name edited outputs after the first input when it is a local file."""
    if not images:
        return None
    first = images[0].strip()
    if not first or is_remote_or_inline(first):
        return None
    return filename_stem(first)
