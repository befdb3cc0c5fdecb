from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

from src.models.gemini import GeminiGenerateContentResponse, GeminiOperation
from src.services.provider.base import FetchedAsset, GeneratedImage

VIDEO_URI = "https://generativelanguage.googleapis.com/v1beta/files/abc:download?alt=media"


def text_response(
    text: str, grounding_chunks: list[dict[str, Any]] | None = None
) -> GeminiGenerateContentResponse:
    candidate: dict[str, Any] = {"content": {"role": "model", "parts": [{"text": text}]}}
    if grounding_chunks is not None:
        candidate["groundingMetadata"] = {"groundingChunks": grounding_chunks}
    return GeminiGenerateContentResponse.model_validate({"candidates": [candidate]})


def pending_operation(name: str = "models/veo/operations/op-1") -> GeminiOperation:
    return GeminiOperation(name=name, done=False)


def finished_operation(
    name: str = "models/veo/operations/op-1", uri: str | None = VIDEO_URI
) -> GeminiOperation:
    samples = [{"video": {"uri": uri}}] if uri else []
    return GeminiOperation.model_validate(
        {
            "name": name,
            "done": True,
            "response": {"generateVideoResponse": {"generatedSamples": samples}},
        }
    )


def make_provider(**overrides: Any) -> SimpleNamespace:
    provider = SimpleNamespace(
        generate_content=AsyncMock(return_value=text_response("hello")),
        generate_image=AsyncMock(return_value=GeneratedImage("image/jpeg", "aW1n")),
        generate_video=AsyncMock(return_value=finished_operation()),
        get_operation=AsyncMock(return_value=finished_operation()),
        fetch_asset=AsyncMock(return_value=FetchedAsset(data=b"mp4-bytes", mime_type="video/mp4")),
    )
    for name, value in overrides.items():
        setattr(provider, name, value)
    return provider
