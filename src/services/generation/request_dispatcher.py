"""
请求分发器

按 mode 将 GenerationRequest 路由到对应的 Provider 调用形态：
- 文本类模式：一次 generateContent
- 图片生成 / 编辑 / 分析：一次调用（编辑、分析缺附件时本地校验失败，不发请求）
- 文档模式：交给 DocumentPipeline
- 视频模式：提交长任务后交给 VideoOperationPoller

不做任何自动重试；Provider 失败原样交给 ErrorClassifier 分类后以 GenerationError 抛出。
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from src.config import config
from src.core.enums import (
    ATTACHMENT_REQUIRED_MODES,
    IMAGE_ASPECT_RATIOS,
    TEXT_MODES,
    VIDEO_ASPECT_RATIOS,
    GenerationMode,
)
from src.core.error_utils import sanitize_error_message
from src.core.exceptions import GenerationError, OperationCancelled, ProviderCallError
from src.core.logger import logger
from src.models.gemini import GeminiContent
from src.models.generation import (
    Attachment,
    GenerationRequest,
    GenerationResult,
    ImageResult,
    TextResult,
)
from src.services.document.pipeline import DocumentPipeline
from src.services.media.store import MediaStore
from src.services.orchestration.error_classifier import ErrorClassifier
from src.services.provider.base import GenerationProvider
from src.services.provider.gemini_client import encode_inline_data
from src.services.video.task_poller import VideoOperationPoller

T = TypeVar("T")

DEFAULT_IMAGE_ASPECT_RATIO = "1:1"
DEFAULT_VIDEO_ASPECT_RATIO = "16:9"


class RequestDispatcher:
    """请求分发器：每个请求产出且仅产出一个结果或一个 ClassifiedError"""

    def __init__(
        self,
        provider: GenerationProvider,
        *,
        media_store: MediaStore | None = None,
        classifier: ErrorClassifier | None = None,
        pipeline: DocumentPipeline | None = None,
        poller_factory: Callable[[], VideoOperationPoller] | None = None,
    ) -> None:
        self._provider = provider
        self._media_store = media_store
        self._classifier = classifier or ErrorClassifier()
        self._pipeline = pipeline or DocumentPipeline(provider, classifier=self._classifier)
        self._poller_factory = poller_factory or self._default_poller
        self._handlers: dict[GenerationMode, Callable[[GenerationRequest], Awaitable[GenerationResult]]] = {
            **{mode: self._handle_text for mode in TEXT_MODES},
            GenerationMode.GENERATE_IMAGE: self._handle_generate_image,
            GenerationMode.EDIT_IMAGE: self._handle_edit_image,
            GenerationMode.ANALYZE_IMAGE: self._handle_analyze_image,
            GenerationMode.GENERATE_DOCUMENT: self._handle_document,
            GenerationMode.GENERATE_VIDEO: self._handle_video,
        }

    def _default_poller(self) -> VideoOperationPoller:
        return VideoOperationPoller(
            self._provider, self._media_store, classifier=self._classifier
        )

    # ------------------------------------------------------------------
    # 入口
    # ------------------------------------------------------------------

    async def dispatch(self, request: GenerationRequest) -> GenerationResult:
        request.mark_consumed()
        logger.info(
            "[Dispatch] {} mode={} search={} attachment={}",
            request.request_id,
            request.mode.value,
            request.use_search,
            request.attachment is not None,
        )
        handler = self._handlers[request.mode]
        result = await self._guarded(request, lambda: handler(request))
        logger.info("[Dispatch] {} -> {}", request.request_id, result.kind)
        return result

    async def start_video(self, request: GenerationRequest) -> VideoOperationPoller:
        """
        只提交视频长任务，返回处于 SUBMITTED 状态的 poller

        由调用方决定何时 run()、何时 cancel()
        """
        request.mark_consumed()
        if request.mode != GenerationMode.GENERATE_VIDEO:
            raise GenerationError(
                self._classifier.validation(f"Mode {request.mode.value} is not a video mode")
            )
        logger.info("[Dispatch] {} submit video job", request.request_id)
        return await self._guarded(request, lambda: self._submit_video(request))

    async def _guarded(self, request: GenerationRequest, call: Callable[[], Awaitable[T]]) -> T:
        try:
            self._validate(request)
            return await call()
        except GenerationError as exc:
            self._log_failure(request, exc)
            raise
        except OperationCancelled:
            logger.info("[Dispatch] {} cancelled by caller", request.request_id)
            raise
        except Exception as exc:
            error = GenerationError(self._classifier.classify(exc))
            self._log_failure(request, error)
            raise error from exc

    def _validate(self, request: GenerationRequest) -> None:
        if not request.prompt.strip():
            raise GenerationError(self._classifier.validation("Prompt must not be empty."))
        if request.mode in ATTACHMENT_REQUIRED_MODES:
            self._require_attachment(request)
        if request.aspect_ratio is None:
            return
        if request.mode == GenerationMode.GENERATE_IMAGE and request.aspect_ratio not in IMAGE_ASPECT_RATIOS:
            raise GenerationError(
                self._classifier.validation(f"Unsupported image aspect ratio '{request.aspect_ratio}'.")
            )
        if request.mode == GenerationMode.GENERATE_VIDEO and request.aspect_ratio not in VIDEO_ASPECT_RATIOS:
            raise GenerationError(
                self._classifier.validation(f"Unsupported video aspect ratio '{request.aspect_ratio}'.")
            )

    def _require_attachment(self, request: GenerationRequest) -> Attachment:
        if request.attachment is None:
            raise GenerationError(
                self._classifier.validation(
                    f"An image must be attached for mode '{request.mode.value}'."
                )
            )
        return request.attachment

    @staticmethod
    def _log_failure(request: GenerationRequest, exc: GenerationError) -> None:
        logger.error(
            "[Dispatch] {} failed kind={}: {}",
            request.request_id,
            exc.error.kind.value,
            sanitize_error_message(exc.error.detail or exc.error.message),
        )

    # ------------------------------------------------------------------
    # 各模式处理
    # ------------------------------------------------------------------

    async def _handle_text(self, request: GenerationRequest) -> TextResult:
        contents: list[GeminiContent] = []
        if request.mode == GenerationMode.CHAT:
            contents.extend(
                GeminiContent(role=turn.role, parts=[{"text": turn.text}])
                for turn in request.history
                if turn.text
            )
        contents.append(GeminiContent(role="user", parts=[{"text": request.prompt}]))

        use_search = request.use_search or request.mode == GenerationMode.SEARCH_WEB
        model = {
            GenerationMode.CHAT: config.chat_model,
            GenerationMode.QUICK_CHAT: config.quick_chat_model,
            GenerationMode.COMPLEX_QUERY: config.complex_model,
            GenerationMode.SEARCH_WEB: config.chat_model,
        }[request.mode]
        thinking_budget = (
            config.complex_thinking_budget if request.mode == GenerationMode.COMPLEX_QUERY else None
        )

        response = await self._provider.generate_content(
            model, contents, use_search=use_search, thinking_budget=thinking_budget
        )
        references = response.grounding_references() if use_search else []
        return TextResult(text=response.text, references=references)

    async def _handle_generate_image(self, request: GenerationRequest) -> ImageResult:
        image = await self._provider.generate_image(
            request.prompt, aspect_ratio=request.aspect_ratio or DEFAULT_IMAGE_ASPECT_RATIO
        )
        return ImageResult(image_url=image.data_uri, mime_type=image.mime_type)

    async def _handle_edit_image(self, request: GenerationRequest) -> ImageResult:
        attachment = self._require_attachment(request)
        response = await self._provider.generate_content(
            config.image_edit_model,
            [
                GeminiContent(
                    role="user",
                    parts=[encode_inline_data(attachment), {"text": request.prompt}],
                )
            ],
            response_modalities=["IMAGE"],
        )
        images = response.inline_images()
        if not images:
            raise ProviderCallError("No image generated")
        mime_type, data = images[0]
        return ImageResult(image_url=f"data:{mime_type};base64,{data}", mime_type=mime_type)

    async def _handle_analyze_image(self, request: GenerationRequest) -> TextResult:
        attachment = self._require_attachment(request)
        response = await self._provider.generate_content(
            config.vision_model,
            [
                GeminiContent(
                    role="user",
                    parts=[encode_inline_data(attachment), {"text": request.prompt}],
                )
            ],
        )
        return TextResult(text=response.text)

    async def _handle_document(self, request: GenerationRequest) -> GenerationResult:
        return await self._pipeline.run(
            request.prompt, style=request.document_style, use_search=request.use_search
        )

    async def _handle_video(self, request: GenerationRequest) -> GenerationResult:
        poller = await self._submit_video(request)
        return await poller.run()

    async def _submit_video(self, request: GenerationRequest) -> VideoOperationPoller:
        operation = await self._provider.generate_video(
            request.prompt,
            aspect_ratio=request.aspect_ratio or DEFAULT_VIDEO_ASPECT_RATIO,
            image=request.attachment,
        )
        logger.info("[Dispatch] {} video operation submitted: {}", request.request_id, operation.name)
        poller = self._poller_factory()
        poller.submit(operation)
        return poller
