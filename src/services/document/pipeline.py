"""
结构化文档生成流水线

阶段 1：一次调用生成骨架 {title, elements[]}
阶段 2：为每个带 mediaPrompt 的元素并发生成配图，所有分支独立结算
        （成功 -> 图片引用，失败 -> NO_MEDIA），单个分支失败不影响其他分支与整体结果
"""

from __future__ import annotations

import asyncio

from src.config import config
from src.core.enums import NO_MEDIA, DocumentStyle
from src.core.logger import logger
from src.models.gemini import GeminiContent
from src.models.generation import DocumentResult, GroundingReference, StructuredDocument
from src.services.document.skeleton import SKELETON_SCHEMA, parse_skeleton, render_skeleton_prompt
from src.services.orchestration.error_classifier import ErrorClassifier
from src.services.provider.base import GeneratedImage, GenerationProvider


class DocumentPipeline:
    def __init__(
        self,
        provider: GenerationProvider,
        *,
        classifier: ErrorClassifier | None = None,
        model: str | None = None,
        image_aspect_ratio: str | None = None,
    ) -> None:
        self._provider = provider
        self._classifier = classifier or ErrorClassifier()
        self._model = model or config.document_model
        self._image_aspect_ratio = image_aspect_ratio or config.document_image_aspect_ratio

    async def run(
        self,
        topic: str,
        *,
        style: DocumentStyle = DocumentStyle.PROFESSIONAL,
        use_search: bool = False,
    ) -> DocumentResult:
        skeleton, references = await self.build_skeleton(topic, style=style, use_search=use_search)
        if not skeleton.elements:
            logger.info("[Document] 骨架为空，跳过配图阶段")
            return DocumentResult(document=skeleton, style=style, references=references)

        document = await self.enrich(skeleton)
        return DocumentResult(document=document, style=style, references=references)

    async def build_skeleton(
        self,
        topic: str,
        *,
        style: DocumentStyle,
        use_search: bool,
    ) -> tuple[StructuredDocument, list[GroundingReference]]:
        prompt = render_skeleton_prompt(topic, style, use_search)
        response = await self._provider.generate_content(
            self._model,
            [GeminiContent(role="user", parts=[{"text": prompt}])],
            use_search=use_search,
            # 搜索增强与 responseSchema 不同时下发
            response_schema=None if use_search else SKELETON_SCHEMA,
        )
        skeleton = parse_skeleton(response.text)
        logger.info(
            "[Document] 骨架生成完成: title={!r}, elements={}", skeleton.title, len(skeleton.elements)
        )
        references = response.grounding_references() if use_search else []
        return skeleton, references

    async def enrich(self, skeleton: StructuredDocument) -> StructuredDocument:
        """并发配图，返回新文档；元素顺序与骨架一致"""
        elements = [element.model_copy(update={"media": NO_MEDIA}) for element in skeleton.elements]
        targets = [
            (index, element.media_prompt.strip())
            for index, element in enumerate(skeleton.elements)
            if element.media_prompt and element.media_prompt.strip()
        ]
        if not targets:
            return StructuredDocument(title=skeleton.title, elements=elements)

        outcomes = await asyncio.gather(
            *(
                self._provider.generate_image(prompt, aspect_ratio=self._image_aspect_ratio)
                for _, prompt in targets
            ),
            return_exceptions=True,
        )

        failures = 0
        for (index, _), outcome in zip(targets, outcomes):
            if isinstance(outcome, GeneratedImage):
                elements[index] = elements[index].model_copy(update={"media": outcome.data_uri})
                continue
            failures += 1
            error = (
                self._classifier.classify(outcome)
                if isinstance(outcome, BaseException)
                else self._classifier.classify(f"Unexpected image result: {outcome!r}")
            )
            logger.warning(
                "[Document] 元素 #{} 配图失败 kind={}: {}",
                index,
                error.kind.value,
                error.detail or error.message,
            )

        logger.info("[Document] 配图完成: {}/{} 成功", len(targets) - failures, len(targets))
        return StructuredDocument(title=skeleton.title, elements=elements)
