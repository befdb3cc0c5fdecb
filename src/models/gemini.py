"""
Google Gemini REST 请求/响应模型

覆盖 generateContent / Imagen predict / Veo predictLongRunning / operations 四类接口
采用宽松类型定义，只解析控制流需要的字段，其余透传
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.generation import GroundingReference


class BaseModelWithExtras(BaseModel):
    """允许额外字段的基础模型"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ---------------------------------------------------------------------------
# generateContent
# ---------------------------------------------------------------------------


class GeminiContent(BaseModelWithExtras):
    """
    Gemini 消息内容

    parts 接受任意字典列表：{"text": ...} / {"inlineData": {"mimeType": ..., "data": ...}}
    """

    role: str | None = None
    parts: list[dict[str, Any]] = Field(default_factory=list)


class GeminiRequest(BaseModelWithExtras):
    """generateContent 请求体，序列化时需 by_alias=True, exclude_none=True"""

    contents: list[GeminiContent]
    tools: list[dict[str, Any]] | None = None
    generation_config: dict[str, Any] | None = Field(default=None, alias="generationConfig")


class GeminiCandidate(BaseModelWithExtras):
    content: GeminiContent | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")
    grounding_metadata: dict[str, Any] | None = Field(default=None, alias="groundingMetadata")


class GeminiGenerateContentResponse(BaseModelWithExtras):
    candidates: list[GeminiCandidate] = Field(default_factory=list)
    prompt_feedback: dict[str, Any] | None = Field(default=None, alias="promptFeedback")

    def _first_parts(self) -> list[dict[str, Any]]:
        if not self.candidates or self.candidates[0].content is None:
            return []
        return self.candidates[0].content.parts

    @property
    def block_reason(self) -> str | None:
        if self.prompt_feedback:
            reason = self.prompt_feedback.get("blockReason")
            if reason:
                return str(reason)
        return None

    @property
    def finish_reason(self) -> str | None:
        return self.candidates[0].finish_reason if self.candidates else None

    @property
    def text(self) -> str:
        """拼接首个候选的文本 part（跳过 thought part）"""
        return "".join(
            str(part.get("text", ""))
            for part in self._first_parts()
            if isinstance(part, dict) and "text" in part and not part.get("thought")
        )

    def inline_images(self) -> list[tuple[str, str]]:
        """返回 [(mime_type, base64_data)]"""
        images: list[tuple[str, str]] = []
        for part in self._first_parts():
            inline = part.get("inlineData") or part.get("inline_data")
            if isinstance(inline, dict) and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                images.append((str(mime_type), str(inline["data"])))
        return images

    def grounding_references(self) -> list[GroundingReference]:
        """
        提取 grounding 引用

        仅保留同时具备 uri 与 title 的 web/maps 条目，保持上游顺序
        """
        if not self.candidates or not self.candidates[0].grounding_metadata:
            return []
        chunks = self.candidates[0].grounding_metadata.get("groundingChunks") or []
        references: list[GroundingReference] = []
        for chunk in chunks:
            if not isinstance(chunk, dict):
                continue
            for source in ("web", "maps"):
                entry = chunk.get(source)
                if isinstance(entry, dict) and entry.get("uri") and entry.get("title"):
                    references.append(
                        GroundingReference(
                            uri=str(entry["uri"]), title=str(entry["title"]), source=source
                        )
                    )
        return references


# ---------------------------------------------------------------------------
# Imagen predict
# ---------------------------------------------------------------------------


class ImagenPrediction(BaseModelWithExtras):
    bytes_base64_encoded: str | None = Field(default=None, alias="bytesBase64Encoded")
    mime_type: str | None = Field(default=None, alias="mimeType")
    rai_filtered_reason: str | None = Field(default=None, alias="raiFilteredReason")


class ImagenPredictResponse(BaseModelWithExtras):
    predictions: list[ImagenPrediction] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Veo 长任务
# ---------------------------------------------------------------------------


class GeminiOperation(BaseModelWithExtras):
    """
    长任务句柄

    done 只会从 False 变为 True 一次；完成后 response 与 error 二选一
    """

    name: str
    done: bool = False
    error: dict[str, Any] | None = None
    response: dict[str, Any] | None = None

    @property
    def error_message(self) -> str | None:
        if not self.error:
            return None
        message = self.error.get("message")
        return str(message) if message else f"Operation failed: {self.error}"

    def _video_response(self) -> dict[str, Any]:
        if not self.response:
            return {}
        inner = self.response.get("generateVideoResponse")
        return inner if isinstance(inner, dict) else self.response

    @property
    def video_uri(self) -> str | None:
        """首个生成视频的下载地址（兼容 generatedSamples / generatedVideos 两种结构）"""
        body = self._video_response()
        samples = body.get("generatedSamples") or body.get("generatedVideos") or []
        if not samples or not isinstance(samples[0], dict):
            return None
        video = samples[0].get("video") or {}
        uri = video.get("uri") if isinstance(video, dict) else None
        return str(uri) if uri else None

    @property
    def filtered_reasons(self) -> list[str]:
        reasons = self._video_response().get("raiMediaFilteredReasons") or []
        return [str(r) for r in reasons]


__all__ = [
    "BaseModelWithExtras",
    "GeminiContent",
    "GeminiRequest",
    "GeminiCandidate",
    "GeminiGenerateContentResponse",
    "ImagenPrediction",
    "ImagenPredictResponse",
    "GeminiOperation",
]
