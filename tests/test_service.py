"""End-to-end tests for the generate and edit flows against a fake upstream."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from openrouter_image.client import UpstreamClient
from openrouter_image.config import ServerConfig
from openrouter_image.errors import (
    MalformedResponse,
    TransportError,
    UpstreamError,
    UpstreamHttpError,
    UsageError,
)
from openrouter_image.service import ImageService
from openrouter_image.state import SaveDirectory

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")


def _fake_session(reply: Any, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = reply
    response.text = json.dumps(reply)
    session = MagicMock()
    session.post.return_value = response
    return session


def _service(tmp_path: Path, session: MagicMock) -> ImageService:
    config = ServerConfig(api_key="sk-test", model="test/model", save_directory=tmp_path)
    return ImageService(UpstreamClient(config, session), SaveDirectory(tmp_path))


def _sent_body(session: MagicMock) -> dict:
    return session.post.call_args.kwargs["json"]


@pytest.mark.asyncio
async def test_generate_saves_b64_json_image(tmp_path: Path) -> None:
    reply = {
        "data": [{"b64_json": PNG_B64}],
        "choices": [{"message": {"content": "A cat"}}],
        "usage": {"prompt_tokens": 5, "completion_tokens": 9, "total_tokens": 14},
    }
    session = _fake_session(reply)

    report = await _service(tmp_path, session).generate_image("cat")

    assert "**Model:** test/model" in report
    assert "**Prompt:** cat" in report
    assert "**Response:** A cat" in report
    assert "1 images" in report
    assert "saved to" in report
    assert "- total tokens: 14" in report
    saved = list(tmp_path.iterdir())
    assert len(saved) == 1
    assert saved[0].read_bytes() == PNG_BYTES
    assert str(saved[0]) in report


@pytest.mark.asyncio
async def test_generate_request_shape(tmp_path: Path) -> None:
    session = _fake_session({"choices": [{"message": {"content": "hi"}}]})

    await _service(tmp_path, session).generate_image("a red fox")

    args, kwargs = session.post.call_args
    assert args[0] == "https://openrouter.ai/api/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    body = kwargs["json"]
    assert body["model"] == "test/model"
    assert body["max_tokens"] == 1000
    assert body["temperature"] == 0.7
    assert body["messages"] == [
        {"role": "user", "content": [{"type": "text", "text": "a red fox"}]}
    ]


@pytest.mark.asyncio
async def test_edit_with_no_images_never_calls_upstream(tmp_path: Path) -> None:
    session = _fake_session({})

    with pytest.raises(UsageError) as excinfo:
        await _service(tmp_path, session).edit_image("make it blue", [])

    message = str(excinfo.value)
    assert "URL" in message and "base64" in message and "local file path" in message
    session.post.assert_not_called()


@pytest.mark.asyncio
async def test_edit_classifies_inputs_and_names_outputs(tmp_path: Path) -> None:
    (tmp_path / "dog.png").write_bytes(PNG_BYTES)
    reply = {
        "choices": [
            {
                "message": {
                    "content": "Edited",
                    "images": [
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/png;base64,{PNG_B64}"},
                        }
                    ],
                }
            }
        ]
    }
    session = _fake_session(reply)
    inputs = ["dog", "https://x/y.png", "missing-file.png"]

    report = await _service(tmp_path, session).edit_image("make it blue", inputs)

    parts = _sent_body(session)["messages"][0]["content"]
    assert parts[0] == {"type": "text", "text": "make it blue"}
    assert parts[1]["image_url"]["url"].startswith("data:image/png;base64,")
    assert parts[2]["image_url"]["url"] == "https://x/y.png"
    assert parts[3]["image_url"]["url"] == "missing-file.png"
    assert "**Instruction:** make it blue" in report
    assert "**Input images:** 3 images" in report
    assert (tmp_path / "dog_edited.png").read_bytes() == PNG_BYTES


@pytest.mark.asyncio
async def test_unsaved_images_are_reported(tmp_path: Path) -> None:
    reply = {
        "choices": [
            {"message": {"content": [{"type": "image_url", "image_url": {"url": "data:image/png;base64,@@@"}}]}}
        ]
    }

    report = await _service(tmp_path, _fake_session(reply)).generate_image("cat")

    assert "1 images" in report
    assert "not saved (invalid base64 payload" in report
    assert "**Response:** (no content)" in report


@pytest.mark.asyncio
async def test_directory_change_applies_to_later_calls(tmp_path: Path) -> None:
    reply = {"data": [{"b64_json": PNG_B64}], "choices": [{"message": {"content": "ok"}}]}
    service = _service(tmp_path / "first", _fake_session(reply))

    await service.generate_image("one")
    service.save_directory.set(tmp_path / "second")
    await service.generate_image("two")

    assert len(list((tmp_path / "first").iterdir())) == 1
    assert len(list((tmp_path / "second").iterdir())) == 1


@pytest.mark.asyncio
async def test_http_error_carries_status_and_body(tmp_path: Path) -> None:
    session = _fake_session({"error": "quota exceeded"}, status_code=429)

    with pytest.raises(UpstreamHttpError) as excinfo:
        await _service(tmp_path, session).generate_image("cat")

    assert excinfo.value.status_code == 429
    assert "429" in str(excinfo.value)
    assert "quota exceeded" in str(excinfo.value)
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_transport_error(tmp_path: Path) -> None:
    session = MagicMock()
    session.post.side_effect = requests.Timeout("read timed out")

    with pytest.raises(TransportError, match="read timed out"):
        await _service(tmp_path, session).generate_image("cat")


@pytest.mark.asyncio
async def test_upstream_error_body(tmp_path: Path) -> None:
    session = _fake_session({"error": {"message": "bad key"}})

    with pytest.raises(UpstreamError, match="bad key"):
        await _service(tmp_path, session).generate_image("cat")


@pytest.mark.asyncio
async def test_non_json_reply_is_malformed(tmp_path: Path) -> None:
    session = _fake_session({})
    session.post.return_value.json.side_effect = ValueError("Expecting value")

    with pytest.raises(MalformedResponse):
        await _service(tmp_path, session).generate_image("cat")


@pytest.mark.asyncio
async def test_unresolvable_home_path_is_forwarded(tmp_path: Path) -> None:
    session = _fake_session({"choices": [{"message": {"content": "ok"}}]})

    await _service(tmp_path, session).edit_image("x", ["~nosuchuser_zz/photo.png"])

    parts = _sent_body(session)["messages"][0]["content"]
    assert parts[1] == {"type": "image_url", "image_url": {"url": "~nosuchuser_zz/photo.png"}}


@pytest.mark.asyncio
async def test_image_entry_without_url_is_reported_not_saved(tmp_path: Path) -> None:
    reply = {"choices": [{"message": {"content": "ok", "images": [{"image_url": {}}]}}]}

    report = await _service(tmp_path, _fake_session(reply)).generate_image("cat")

    assert "1 images" in report
    assert "not saved (image entry has no URL)" in report
    assert list(tmp_path.iterdir()) == []
