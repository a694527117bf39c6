"""HTTP client for the OpenAI-compatible chat/completions endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import requests

from .config import ServerConfig
from .errors import MalformedResponse, TransportError, UpstreamHttpError

logger = logging.getLogger("openrouter_image.client")

MAX_TOKENS = 1000
TEMPERATURE = 0.7


def text_part(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}


def image_part(url: str) -> Dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": url}}


class UpstreamClient:
    """Sends single-turn multimodal requests to the configured model."""

    def __init__(
        self,
        config: ServerConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()

    def build_request(self, content: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }

    def _post(self, body: Dict[str, Any]) -> Any:
        url = self.config.completions_url
        try:
            resp = self.session.post(
                url,
                json=body,
                headers=self.config.headers(),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise UpstreamHttpError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as exc:
            raise MalformedResponse(f"Failed to parse upstream reply as JSON: {exc}") from exc

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Upstream reply: %s", json.dumps(data, ensure_ascii=False, indent=2))
        return data

    async def chat_completion(self, content: List[Dict[str, Any]]) -> Any:
        """POST one user message and return the decoded JSON reply."""
        body = self.build_request(content)
        logger.info(
            "Sending %d content part(s) to %s (model=%s)",
            len(content),
            self.config.completions_url,
            self.config.model,
        )
        return await asyncio.to_thread(self._post, body)
