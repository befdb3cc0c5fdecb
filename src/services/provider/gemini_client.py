"""
Gemini REST 客户端

不做重试：任何失败都以 ProviderCallError 原样抛出，由上层分类
"""

from __future__ import annotations

import base64
from typing import Any

import httpx

from src.clients.http_client import HTTPClientPool
from src.config import config
from src.core.error_utils import extract_upstream_message, sanitize_error_message
from src.core.exceptions import ProviderCallError, ResponseFormatError
from src.core.logger import logger
from src.models.gemini import (
    GeminiContent,
    GeminiGenerateContentResponse,
    GeminiOperation,
    GeminiRequest,
    ImagenPredictResponse,
)
from src.models.generation import Attachment
from src.services.provider.base import FetchedAsset, GeneratedImage
from src.services.provider.transport import (
    build_auth_headers,
    build_model_url,
    build_operation_url,
    redact_url_for_log,
)

# finishReason 属于安全拦截的取值
_SAFETY_FINISH_REASONS = frozenset(
    {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "IMAGE_SAFETY"}
)


def encode_inline_data(attachment: Attachment) -> dict[str, Any]:
    return {
        "inlineData": {
            "mimeType": attachment.mime_type,
            "data": base64.b64encode(attachment.data).decode("ascii"),
        }
    }


class GeminiClient:
    """Gemini / Imagen / Veo 调用封装"""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else config.gemini_api_key
        self._base_url = base_url or config.gemini_base_url
        self._http_client = http_client

    async def _client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return await HTTPClientPool.get_default_client_async()

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise ProviderCallError("GEMINI_API_KEY environment variable not set")
        return build_auth_headers(self._api_key)

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        body = response.text
        message = extract_upstream_message(body) or body.strip() or response.reason_phrase
        raise ProviderCallError(
            f"HTTP {response.status_code}: {sanitize_error_message(message or 'Provider error')}",
            status_code=response.status_code,
            upstream_response=body,
        )

    @classmethod
    def _decode_json(cls, response: httpx.Response) -> dict[str, Any]:
        cls._raise_for_status(response)
        try:
            payload = response.json()
        except ValueError as exc:
            raise ResponseFormatError(f"Provider returned malformed JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ResponseFormatError("Provider returned a non-object JSON body")
        return payload

    async def _post_json(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        headers = self._headers()
        client = await self._client()
        logger.debug("POST {}", redact_url_for_log(url))
        response = await client.post(url, headers=headers, json=body)
        return self._decode_json(response)

    # ------------------------------------------------------------------
    # 文本 / 文档
    # ------------------------------------------------------------------

    async def generate_content(
        self,
        model: str,
        contents: list[GeminiContent],
        *,
        use_search: bool = False,
        response_schema: dict[str, Any] | None = None,
        thinking_budget: int | None = None,
        response_modalities: list[str] | None = None,
    ) -> GeminiGenerateContentResponse:
        generation_config: dict[str, Any] = {}
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = response_schema
        if thinking_budget is not None:
            generation_config["thinkingConfig"] = {"thinkingBudget": thinking_budget}
        if response_modalities:
            generation_config["responseModalities"] = response_modalities

        request = GeminiRequest(
            contents=contents,
            tools=[{"googleSearch": {}}] if use_search else None,
            generationConfig=generation_config or None,
        )
        url = build_model_url(self._base_url, model, "generateContent")
        payload = await self._post_json(url, request.model_dump(by_alias=True, exclude_none=True))
        result = GeminiGenerateContentResponse.model_validate(payload)

        if result.block_reason:
            raise ProviderCallError(f"Prompt blocked by safety filters: {result.block_reason}")
        if (
            result.finish_reason in _SAFETY_FINISH_REASONS
            and not result.text
            and not result.inline_images()
        ):
            raise ProviderCallError(f"Response blocked by safety filters: {result.finish_reason}")
        return result

    # ------------------------------------------------------------------
    # 图片
    # ------------------------------------------------------------------

    async def generate_image(self, prompt: str, *, aspect_ratio: str) -> GeneratedImage:
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "sampleCount": 1,
                "aspectRatio": aspect_ratio,
                "outputMimeType": config.image_output_mime_type,
            },
        }
        url = build_model_url(self._base_url, config.image_model, "predict")
        result = ImagenPredictResponse.model_validate(await self._post_json(url, body))

        for prediction in result.predictions:
            if prediction.bytes_base64_encoded:
                return GeneratedImage(
                    mime_type=prediction.mime_type or config.image_output_mime_type,
                    base64_data=prediction.bytes_base64_encoded,
                )
        filtered = [p.rai_filtered_reason for p in result.predictions if p.rai_filtered_reason]
        if filtered:
            raise ProviderCallError(f"Image blocked by safety filters: {filtered[0]}")
        raise ProviderCallError("No image generated")

    # ------------------------------------------------------------------
    # 视频长任务
    # ------------------------------------------------------------------

    async def generate_video(
        self,
        prompt: str,
        *,
        aspect_ratio: str,
        image: Attachment | None = None,
    ) -> GeminiOperation:
        instance: dict[str, Any] = {"prompt": prompt}
        if image is not None:
            instance["image"] = {
                "bytesBase64Encoded": base64.b64encode(image.data).decode("ascii"),
                "mimeType": image.mime_type,
            }
        body = {
            "instances": [instance],
            "parameters": {
                "aspectRatio": aspect_ratio,
                "resolution": config.video_resolution,
                "sampleCount": 1,
            },
        }
        url = build_model_url(self._base_url, config.video_model, "predictLongRunning")
        payload = await self._post_json(url, body)
        if not payload.get("name"):
            raise ResponseFormatError("Upstream returned empty operation name")
        return GeminiOperation.model_validate(payload)

    async def get_operation(self, name: str) -> GeminiOperation:
        url = build_operation_url(self._base_url, name)
        headers = self._headers()
        client = await self._client()
        response = await client.get(url, headers=headers)
        payload = self._decode_json(response)
        payload.setdefault("name", name)
        return GeminiOperation.model_validate(payload)

    async def fetch_asset(self, uri: str) -> FetchedAsset:
        headers = self._headers()
        client = await self._client()
        logger.debug("GET {}", redact_url_for_log(uri))
        response = await client.get(uri, headers=headers)
        self._raise_for_status(response)
        content_type = response.headers.get("content-type", "video/mp4").split(";")[0].strip()
        return FetchedAsset(data=response.content, mime_type=content_type or "video/mp4")
