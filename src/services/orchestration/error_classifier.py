"""
错误分类器 - 纯逻辑，无副作用

按优先级对原始失败信号做模式匹配，映射到封闭的 ErrorKind 集合：
1. 凭据无效        -> AUTHENTICATION
2. 限流 / 配额      -> RATE_LIMITED
3. 安全拦截        -> CONTENT_BLOCKED
4. 结构 / JSON 解析 -> DATA_FORMAT
5. 长任务实体不存在 / 权限 -> CREDENTIAL_SCOPE
6. 其他            -> UNKNOWN（原始消息原样透传）

宁可漏判为 UNKNOWN，也不误判。
"""

from __future__ import annotations

import json
import re

from pydantic import ValidationError

from src.core.enums import ErrorKind
from src.core.error_utils import extract_error_message
from src.core.exceptions import ResponseFormatError
from src.models.generation import ClassifiedError

_AUTHENTICATION_PATTERN = re.compile(
    r"api key not valid|api_key_invalid|invalid api key|api key expired", re.IGNORECASE
)
_RATE_LIMIT_PATTERN = re.compile(
    r"\b429\b|rate limit|resource_exhausted|quota exceeded|exceeded your current quota",
    re.IGNORECASE,
)
_CONTENT_BLOCKED_PATTERN = re.compile(r"safety|blocked", re.IGNORECASE)
_CREDENTIAL_SCOPE_PATTERN = re.compile(
    r"requested entity was not found|permission_denied|does not have permission",
    re.IGNORECASE,
)

# 面向终端用户的固定文案
ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION: (
        "Authentication Error: The API key is invalid. Please check your setup."
    ),
    ErrorKind.RATE_LIMITED: (
        "Rate Limit Exceeded: You've sent too many requests in a short period. "
        "Please wait and try again later."
    ),
    ErrorKind.CONTENT_BLOCKED: (
        "Content Safety: The request was blocked due to safety settings. "
        "Please adjust your prompt."
    ),
    ErrorKind.DATA_FORMAT: (
        "Invalid Response: The AI returned a malformed response. "
        "This might be a temporary issue. Please try again."
    ),
    ErrorKind.CREDENTIAL_SCOPE: (
        "API Key Error: The selected API key may not have the necessary permissions "
        "or billing enabled for this model. Please select a different key."
    ),
    ErrorKind.VALIDATION: "Invalid Request: {detail}",
}


def _is_format_failure(raw: BaseException | str) -> bool:
    return isinstance(raw, (json.JSONDecodeError, ValidationError, ResponseFormatError))


class ErrorClassifier:
    """错误分类器"""

    @staticmethod
    def raw_message(raw: BaseException | str) -> str:
        if isinstance(raw, str):
            return raw
        return extract_error_message(raw)

    def classify(self, raw: BaseException | str) -> ClassifiedError:
        message = self.raw_message(raw)

        if _AUTHENTICATION_PATTERN.search(message):
            return self._build(ErrorKind.AUTHENTICATION, message)
        if _RATE_LIMIT_PATTERN.search(message):
            return self._build(ErrorKind.RATE_LIMITED, message)
        if _CONTENT_BLOCKED_PATTERN.search(message):
            return self._build(ErrorKind.CONTENT_BLOCKED, message)
        if _is_format_failure(raw):
            return self._build(ErrorKind.DATA_FORMAT, message)
        if _CREDENTIAL_SCOPE_PATTERN.search(message):
            return self._build(ErrorKind.CREDENTIAL_SCOPE, message)
        return ClassifiedError(kind=ErrorKind.UNKNOWN, message=message, detail=message)

    @staticmethod
    def validation(detail: str) -> ClassifiedError:
        """本地校验失败（发生在任何网络调用之前）"""
        return ErrorClassifier._build(ErrorKind.VALIDATION, detail)

    @staticmethod
    def _build(kind: ErrorKind, detail: str) -> ClassifiedError:
        return ClassifiedError(
            kind=kind,
            message=ERROR_MESSAGES[kind].format(detail=detail),
            detail=detail,
        )


_default_classifier = ErrorClassifier()


def classify(raw: BaseException | str) -> ClassifiedError:
    return _default_classifier.classify(raw)
