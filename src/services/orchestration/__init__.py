"""
Orchestration 模块

- ErrorClassifier: 错误分类器，负责错误分类（纯逻辑，无副作用）
"""

from .error_classifier import ERROR_MESSAGES, ErrorClassifier, classify

__all__ = [
    "ErrorClassifier",
    "ERROR_MESSAGES",
    "classify",
]
