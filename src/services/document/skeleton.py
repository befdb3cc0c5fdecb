"""
文档骨架：提示词、输出 schema 与解析

解析分两步：先去掉可选的 ``` 代码块包裹，再严格解析 JSON。
解析失败一律抛 ResponseFormatError，不返回猜测或残缺的文档。
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from src.core.enums import DocumentStyle
from src.core.exceptions import ResponseFormatError
from src.models.generation import StructuredDocument

# Gemini responseSchema（OpenAPI 子集）
SKELETON_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "elements": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "content": {"type": "ARRAY", "items": {"type": "STRING"}},
                    "mediaPrompt": {"type": "STRING"},
                },
                "required": ["title", "content"],
            },
        },
    },
    "required": ["title", "elements"],
}

_SKELETON_FORMAT_INSTRUCTION = (
    "Respond with only a JSON object, without any other text, in exactly this shape: "
    '{"title": string, "elements": [{"title": string, "content": [string, ...], '
    '"mediaPrompt": string}]}.'
)

_CODE_FENCE_PATTERN = re.compile(r"^\s*```[\w-]*[ \t]*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def render_skeleton_prompt(topic: str, style: DocumentStyle, use_search: bool) -> str:
    prompt = (
        "Based on the following topic, create a presentation structure with a title and a "
        "list of slides. Each slide should have a title, a list of bullet points for its "
        "content, and a mediaPrompt: a short description of an illustrative image for the "
        "slide (use an empty string when no image fits). "
        f"The presentation should have a '{style.value}' style (e.g., tone, slide structure). "
        f"Topic: {topic}"
    )
    if use_search:
        # 搜索增强时不下发 schema，改用文字约束输出结构
        prompt = f"{prompt}\n\n{_SKELETON_FORMAT_INSTRUCTION}"
    return prompt


def strip_code_fence(text: str) -> str:
    """去掉 ```json ... ``` 包裹；未包裹时原样返回（去首尾空白）"""
    match = _CODE_FENCE_PATTERN.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_skeleton(text: str) -> StructuredDocument:
    body = strip_code_fence(text)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ResponseFormatError(f"Document skeleton is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ResponseFormatError("Document skeleton must be a JSON object")
    try:
        return StructuredDocument.model_validate(payload)
    except ValidationError as exc:
        raise ResponseFormatError(
            f"Document skeleton has an unexpected structure ({exc.error_count()} errors)"
        ) from exc
