import base64
import json
from typing import Any, Callable

import httpx
import pytest

from src.config import config
from src.core.exceptions import ProviderCallError, ResponseFormatError
from src.models.gemini import GeminiContent
from src.models.generation import Attachment
from src.services.provider.gemini_client import GeminiClient

BASE_URL = "https://gemini.test"


def _client(handler: Callable[[httpx.Request], httpx.Response], api_key: str = "secret") -> GeminiClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiClient(api_key=api_key, base_url=BASE_URL, http_client=http_client)


def _recording(payload: Any, status_code: int = 200) -> tuple[list[httpx.Request], Callable]:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=payload)

    return seen, handler


USER_HI = [GeminiContent(role="user", parts=[{"text": "hi"}])]


@pytest.mark.asyncio
async def test_generate_content_request_shape() -> None:
    seen, handler = _recording(
        {"candidates": [{"content": {"role": "model", "parts": [{"text": "hello"}]}}]}
    )

    response = await _client(handler).generate_content(
        "gemini-2.5-flash",
        USER_HI,
        use_search=True,
        thinking_budget=128,
    )

    assert response.text == "hello"
    request = seen[0]
    assert request.url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
    assert request.headers["x-goog-api-key"] == "secret"
    body = json.loads(request.content)
    assert body["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]
    assert body["tools"] == [{"googleSearch": {}}]
    assert body["generationConfig"] == {"thinkingConfig": {"thinkingBudget": 128}}


@pytest.mark.asyncio
async def test_generate_content_with_schema() -> None:
    seen, handler = _recording({"candidates": [{"content": {"parts": [{"text": "{}"}]}}]})
    schema = {"type": "OBJECT"}

    await _client(handler).generate_content("m", USER_HI, response_schema=schema)

    body = json.loads(seen[0].content)
    assert "tools" not in body
    assert body["generationConfig"] == {
        "responseMimeType": "application/json",
        "responseSchema": schema,
    }


@pytest.mark.asyncio
async def test_upstream_error_keeps_status_and_message() -> None:
    _, handler = _recording(
        {"error": {"code": 429, "message": "Resource has been exhausted", "status": "RESOURCE_EXHAUSTED"}},
        status_code=429,
    )

    with pytest.raises(ProviderCallError) as exc_info:
        await _client(handler).generate_content("m", USER_HI)

    assert exc_info.value.status_code == 429
    assert str(exc_info.value) == "HTTP 429: Resource has been exhausted"


@pytest.mark.asyncio
async def test_blocked_prompt_raises() -> None:
    _, handler = _recording({"promptFeedback": {"blockReason": "SAFETY"}})

    with pytest.raises(ProviderCallError, match="safety"):
        await _client(handler).generate_content("m", USER_HI)


@pytest.mark.asyncio
async def test_malformed_json_raises_format_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>oops</html>")

    with pytest.raises(ResponseFormatError):
        await _client(handler).generate_content("m", USER_HI)


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_request() -> None:
    seen, handler = _recording({})

    with pytest.raises(ProviderCallError, match="GEMINI_API_KEY"):
        await _client(handler, api_key="").generate_content("m", USER_HI)
    assert seen == []


@pytest.mark.asyncio
async def test_generate_image_returns_first_prediction() -> None:
    seen, handler = _recording(
        {"predictions": [{"bytesBase64Encoded": "aW1n", "mimeType": "image/png"}]}
    )

    image = await _client(handler).generate_image("a cat", aspect_ratio="16:9")

    assert image.data_uri == "data:image/png;base64,aW1n"
    assert seen[0].url.path == f"/v1beta/models/{config.image_model}:predict"
    body = json.loads(seen[0].content)
    assert body["instances"] == [{"prompt": "a cat"}]
    assert body["parameters"]["aspectRatio"] == "16:9"


@pytest.mark.asyncio
async def test_filtered_image_raises_safety_error() -> None:
    _, handler = _recording({"predictions": [{"raiFilteredReason": "Filtered for safety."}]})

    with pytest.raises(ProviderCallError, match="Image blocked by safety filters"):
        await _client(handler).generate_image("x", aspect_ratio="1:1")


@pytest.mark.asyncio
async def test_generate_video_submits_long_running_operation() -> None:
    seen, handler = _recording({"name": "models/veo/operations/op-1"})
    image = Attachment(data=b"frame", mime_type="image/png")

    operation = await _client(handler).generate_video("waves", aspect_ratio="9:16", image=image)

    assert operation.name == "models/veo/operations/op-1"
    assert operation.done is False
    assert seen[0].url.path == f"/v1beta/models/{config.video_model}:predictLongRunning"
    body = json.loads(seen[0].content)
    assert body["instances"][0]["image"] == {
        "bytesBase64Encoded": base64.b64encode(b"frame").decode(),
        "mimeType": "image/png",
    }
    assert body["parameters"]["aspectRatio"] == "9:16"


@pytest.mark.asyncio
async def test_generate_video_without_operation_name_is_format_error() -> None:
    _, handler = _recording({})

    with pytest.raises(ResponseFormatError):
        await _client(handler).generate_video("waves", aspect_ratio="16:9")


@pytest.mark.asyncio
async def test_get_operation_reads_video_uri() -> None:
    seen, handler = _recording(
        {
            "done": True,
            "response": {
                "generateVideoResponse": {
                    "generatedSamples": [{"video": {"uri": "https://files.test/v.mp4"}}]
                }
            },
        }
    )

    operation = await _client(handler).get_operation("operations/op-1")

    assert seen[0].method == "GET"
    assert seen[0].url.path == "/v1beta/operations/op-1"
    assert operation.name == "operations/op-1"
    assert operation.video_uri == "https://files.test/v.mp4"


@pytest.mark.asyncio
async def test_fetch_asset_returns_bytes_and_mime_type() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"mp4", headers={"content-type": "video/mp4; codecs=avc1"})

    asset = await _client(handler).fetch_asset("https://files.test/v.mp4")

    assert asset.data == b"mp4"
    assert asset.mime_type == "video/mp4"
    assert seen[0].headers["x-goog-api-key"] == "secret"
