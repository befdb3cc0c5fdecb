"""
生成请求/结果领域模型

GenerationResult 是按 kind 区分的标签联合，变体与请求 mode 一一对应：
- text: 文本（可带 grounding 引用）
- image: 图片（data URI）
- document: 结构化文档
- video: 长任务产物（operation 名称 + 媒体句柄）
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from src.core.enums import DocumentStyle, ErrorKind, GenerationMode


class Attachment(BaseModel):
    """用户上传的二进制附件（原始字节，不做 base64）"""

    data: bytes
    mime_type: str = "image/png"


class ChatTurn(BaseModel):
    role: Literal["user", "model"]
    text: str


class GenerationRequest(BaseModel):
    """单次生成请求，只能被消费一次"""

    mode: GenerationMode
    prompt: str
    aspect_ratio: str | None = None
    attachment: Attachment | None = None
    document_style: DocumentStyle = DocumentStyle.PROFESSIONAL
    use_search: bool = False
    history: list[ChatTurn] = Field(default_factory=list)
    request_id: str = Field(default_factory=lambda: uuid4().hex)

    _consumed: bool = PrivateAttr(default=False)

    def mark_consumed(self) -> None:
        if self._consumed:
            raise RuntimeError(f"Request {self.request_id} has already been dispatched")
        self._consumed = True


class GroundingReference(BaseModel):
    """搜索增强输出附带的引用"""

    uri: str
    title: str
    source: Literal["web", "maps"] = "web"


class DocumentElement(BaseModel):
    """
    文档元素

    media: None 表示尚未配图；配图结束后要么是图片引用，要么是 NO_MEDIA
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str
    content: list[str] = Field(default_factory=list)
    media_prompt: str | None = Field(default=None, alias="mediaPrompt")
    media: str | None = None


class StructuredDocument(BaseModel):
    title: str
    elements: list[DocumentElement] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# 结果变体
# ---------------------------------------------------------------------------


class TextResult(BaseModel):
    kind: Literal["text"] = "text"
    text: str
    references: list[GroundingReference] = Field(default_factory=list)


class ImageResult(BaseModel):
    kind: Literal["image"] = "image"
    image_url: str  # data:<mime>;base64,...
    mime_type: str


class DocumentResult(BaseModel):
    kind: Literal["document"] = "document"
    document: StructuredDocument
    style: DocumentStyle = DocumentStyle.PROFESSIONAL
    references: list[GroundingReference] = Field(default_factory=list)


class VideoResult(BaseModel):
    kind: Literal["video"] = "video"
    operation_name: str
    media_ref: str
    mime_type: str = "video/mp4"


GenerationResult = Annotated[
    Union[TextResult, ImageResult, DocumentResult, VideoResult],
    Field(discriminator="kind"),
]

@dataclass(frozen=True)
class ClassifiedError:
    """
    已分类的错误

    message 为面向用户的固定模板（UNKNOWN 时为上游原始消息），
    detail 保留原始消息用于日志与排查。
    """

    kind: ErrorKind
    message: str
    detail: str | None = None

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


__all__ = [
    "Attachment",
    "ChatTurn",
    "GenerationRequest",
    "GroundingReference",
    "DocumentElement",
    "StructuredDocument",
    "TextResult",
    "ImageResult",
    "DocumentResult",
    "VideoResult",
    "GenerationResult",
    "ClassifiedError",
]
