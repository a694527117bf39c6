"""Process-wide save directory shared by every tool invocation."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Union

logger = logging.getLogger("openrouter_image.state")


class SaveDirectory:
    """Holder for the directory images are written to.

    The value is an immutable ``Path`` swapped as a whole, and the lock is
    only held while copying the reference in or out. Callers read it once per
    tool invocation and keep their copy for the rest of the call.
    """

    def __init__(self, initial: Union[str, Path]) -> None:
        self._lock = threading.Lock()
        self._path = self.normalize(initial)

    @staticmethod
    def normalize(value: Union[str, Path]) -> Path:
        text = str(value).strip()
        if not text:
            raise ValueError("Save directory must be a non-empty path")
        return Path(text).expanduser().resolve()

    def get(self) -> Path:
        with self._lock:
            return self._path

    def set(self, value: Union[str, Path]) -> Path:
        """Replace the directory and return the normalized value."""
        path = self.normalize(value)
        with self._lock:
            previous = self._path
            self._path = path
        logger.info("Save directory changed from %s to %s", previous, path)
        return path
