"""
错误消息处理工具函数
"""

from __future__ import annotations

import json
import re

# 上游错误文本中可能夹带的凭据
_CREDENTIAL_PATTERN = re.compile(r"(key=|x-goog-api-key[\"']?\s*[:=]\s*[\"']?)([A-Za-z0-9_\-]{8,})")


def sanitize_error_message(message: str) -> str:
    """脱敏错误消息中的凭据，用于日志和返回给调用方"""
    return _CREDENTIAL_PATTERN.sub(r"\1***", message)


def extract_upstream_message(body: str | None) -> str | None:
    """
    从上游错误响应体中提取 message

    Gemini 风格: {"error": {"code": 429, "message": "...", "status": "RESOURCE_EXHAUSTED"}}
    非 JSON 或结构不符时返回 None
    """
    if not body or not body.strip():
        return None
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def extract_error_message(error: BaseException, status_code: int | None = None) -> str:
    """
    从异常中提取原始错误消息（分类器的输入）

    Args:
        error: 异常对象
        status_code: 可选的 HTTP 状态码，用于构建更详细的错误消息

    Returns:
        错误消息字符串，优先使用上游原始响应
    """
    upstream_response = getattr(error, "upstream_response", None)
    upstream_message = (
        extract_upstream_message(upstream_response) if isinstance(upstream_response, str) else None
    )
    if status_code is None:
        status_code = getattr(error, "status_code", None)

    # str 可能为空，如 httpx 超时异常
    error_str = upstream_message or str(error) or repr(error)
    if status_code is not None and not error_str.startswith("HTTP "):
        return f"HTTP {status_code}: {error_str}"
    return error_str
