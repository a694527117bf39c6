"""Orchestration of the generate and edit tools."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .client import UpstreamClient, image_part, text_part
from .errors import InputUnrecognized, UsageError
from .images import persist_images
from .inputs import classify_image_input, derive_base_name
from .normalize import extract_usage, normalize_response
from .report import format_report
from .state import SaveDirectory

logger = logging.getLogger("openrouter_image.service")

EDIT_USAGE_MESSAGE = (
    "edit_image requires at least one input image.\n\n"
    "Provide each image in one of these formats:\n"
    "- URL (http:// or https://), e.g. https://example.com/image.jpg\n"
    "- base64 data URI (data:image/...), e.g. data:image/jpeg;base64,/9j/4AAQ...\n"
    "- local file path, e.g. /home/me/photo.png or C:\\Images\\photo.png"
)


class ImageService:
    """Runs one generate or edit request from prompt to saved files."""

    def __init__(self, client: UpstreamClient, save_directory: SaveDirectory) -> None:
        self.client = client
        self.save_directory = save_directory

    @property
    def model(self) -> str:
        return self.client.config.model

    async def generate_image(self, prompt: str) -> str:
        target_dir = self.save_directory.get()
        reply = await self.client.chat_completion([text_part(prompt)])
        return await self._materialize(
            reply,
            prompt,
            target_dir,
            base_name=None,
            is_edit=False,
        )

    async def edit_image(self, instruction: str, images: Optional[Sequence[str]]) -> str:
        if not images:
            raise UsageError(EDIT_USAGE_MESSAGE)
        target_dir = self.save_directory.get()

        content: List[Dict[str, Any]] = [text_part(instruction)]
        for value in images:
            try:
                classified = classify_image_input(value, target_dir)
            except InputUnrecognized as exc:
                logger.warning("%s; forwarding it unchanged", exc)
                content.append(image_part(value))
                continue
            logger.debug("Edit input classified as %s", classified.kind.value)
            content.append(image_part(classified.payload))

        reply = await self.client.chat_completion(content)
        return await self._materialize(
            reply,
            instruction,
            target_dir,
            base_name=derive_base_name(images),
            is_edit=True,
            input_count=len(images),
        )

    async def _materialize(
        self,
        reply: Any,
        prompt: str,
        target_dir: Path,
        base_name: Optional[str],
        is_edit: bool,
        input_count: Optional[int] = None,
    ) -> str:
        normalized = normalize_response(reply)
        saved = await persist_images(
            normalized.images,
            target_dir,
            base_name=base_name,
            is_edit=is_edit,
            session=self.client.session,
        )
        return format_report(
            self.model,
            prompt,
            normalized.text,
            saved,
            usage=extract_usage(reply),
            input_count=input_count,
        )
