"""
Provider 接口定义

每个逻辑步骤对应一次网络调用：文本/文档、图片、视频提交、轮询、资源下载
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from src.models.gemini import GeminiContent, GeminiGenerateContentResponse, GeminiOperation
from src.models.generation import Attachment


@dataclass(frozen=True)
class GeneratedImage:
    mime_type: str
    base64_data: str

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64_data}"


@dataclass(frozen=True)
class FetchedAsset:
    data: bytes
    mime_type: str


class GenerationProvider(Protocol):
    async def generate_content(
        self,
        model: str,
        contents: list[GeminiContent],
        *,
        use_search: bool = False,
        response_schema: dict[str, Any] | None = None,
        thinking_budget: int | None = None,
        response_modalities: list[str] | None = None,
    ) -> GeminiGenerateContentResponse: ...

    async def generate_image(self, prompt: str, *, aspect_ratio: str) -> GeneratedImage: ...

    async def generate_video(
        self,
        prompt: str,
        *,
        aspect_ratio: str,
        image: Attachment | None = None,
    ) -> GeminiOperation: ...

    async def get_operation(self, name: str) -> GeminiOperation: ...

    async def fetch_asset(self, uri: str) -> FetchedAsset: ...
