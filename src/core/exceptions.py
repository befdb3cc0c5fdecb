"""
异常定义

- ProviderCallError: 上游调用的原始失败（未分类）
- GenerationError: 整个请求失败，携带已分类的 ClassifiedError
- ResponseFormatError: 上游响应或文档骨架无法解析
- OperationCancelled: 调用方放弃了长任务
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.models.generation import ClassifiedError


class ProviderCallError(RuntimeError):
    """上游 Provider 调用失败，携带状态码与原始响应"""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        upstream_response: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.upstream_response = upstream_response


class MissingPayloadError(ProviderCallError):
    """长任务已完成，但没有可用的下载地址"""


class ResponseFormatError(ValueError):
    """上游响应（或文档骨架）无法解析为预期结构"""


class GenerationError(Exception):
    """整个生成请求失败"""

    def __init__(self, error: ClassifiedError):
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self):  # type: ignore[no-untyped-def]
        return self.error.kind


class OperationCancelled(Exception):
    """调用方取消了长任务轮询"""

    def __init__(self, operation_name: str | None = None):
        super().__init__(f"Operation cancelled: {operation_name or 'unknown'}")
        self.operation_name = operation_name
