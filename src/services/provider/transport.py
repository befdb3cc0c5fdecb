"""
Gemini 请求 URL / Header 构建工具

负责:
- 根据模型与方法生成 v1beta 请求 URL
- 长任务 operation URL 规范化
- URL 脱敏（用于日志记录）
"""

from __future__ import annotations

import re

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
API_VERSION = "v1beta"
AUTH_HEADER = "x-goog-api-key"

# URL 中需要脱敏的查询参数（正则模式）
_SENSITIVE_QUERY_PARAMS_PATTERN = re.compile(
    r"([?&])(key|api_key|apikey|token|secret|password|credential)=([^&]*)",
    re.IGNORECASE,
)


def redact_url_for_log(url: str) -> str:
    """
    对 URL 中的敏感查询参数进行脱敏，用于日志记录

    将 ?key=xxx 替换为 ?key=***
    """
    return _SENSITIVE_QUERY_PARAMS_PATTERN.sub(r"\1\2=***", url)


def _normalize_base_url(base_url: str | None) -> str:
    """
    去除末尾斜杠与版本前缀，兼容以下写法：
    - https://generativelanguage.googleapis.com
    - https://generativelanguage.googleapis.com/
    - https://generativelanguage.googleapis.com/v1beta
    """
    base = (base_url or DEFAULT_BASE_URL).rstrip("/")
    suffix = f"/{API_VERSION}"
    if base.endswith(suffix):
        base = base[: -len(suffix)]
    return base


def build_model_url(base_url: str | None, model: str, method: str) -> str:
    """models/{model}:{method}，method 如 generateContent / predict / predictLongRunning"""
    model_path = model if model.startswith("models/") else f"models/{model}"
    return f"{_normalize_base_url(base_url)}/{API_VERSION}/{model_path}:{method}"


def build_operation_url(base_url: str | None, operation_name: str) -> str:
    """
    长任务查询 URL

    operation name 可能是 models/{model}/operations/{id} 或 operations/{id}，
    裸 id 自动补 operations/ 前缀
    """
    name = operation_name.lstrip("/")
    if "operations/" not in name:
        name = f"operations/{name}"
    return f"{_normalize_base_url(base_url)}/{API_VERSION}/{name}"


def build_auth_headers(api_key: str) -> dict[str, str]:
    return {AUTH_HEADER: api_key}
