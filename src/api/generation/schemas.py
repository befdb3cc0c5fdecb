"""
HTTP 请求体定义

附件以 base64 字符串提交，进入领域模型前解码为原始字节
"""

from __future__ import annotations

from pydantic import Base64Bytes, BaseModel, Field

from src.core.enums import DocumentStyle, GenerationMode
from src.models.generation import Attachment, ChatTurn, GenerationRequest


class AttachmentBody(BaseModel):
    data: Base64Bytes
    mime_type: str = "image/png"


class GenerateRequestBody(BaseModel):
    mode: GenerationMode
    prompt: str
    aspect_ratio: str | None = None
    attachment: AttachmentBody | None = None
    document_style: DocumentStyle = DocumentStyle.PROFESSIONAL
    use_search: bool = False
    history: list[ChatTurn] = Field(default_factory=list)

    def to_request(self) -> GenerationRequest:
        attachment = (
            Attachment(data=self.attachment.data, mime_type=self.attachment.mime_type)
            if self.attachment
            else None
        )
        return GenerationRequest(
            mode=self.mode,
            prompt=self.prompt,
            aspect_ratio=self.aspect_ratio,
            attachment=attachment,
            document_style=self.document_style,
            use_search=self.use_search,
            history=self.history,
        )


class VideoRequestBody(BaseModel):
    prompt: str
    aspect_ratio: str | None = None
    attachment: AttachmentBody | None = None

    def to_request(self) -> GenerationRequest:
        return GenerateRequestBody(
            mode=GenerationMode.GENERATE_VIDEO,
            prompt=self.prompt,
            aspect_ratio=self.aspect_ratio,
            attachment=self.attachment,
        ).to_request()
