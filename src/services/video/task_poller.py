"""
视频长任务轮询

状态机: IDLE -> SUBMITTED -> POLLING -> {SUCCEEDED | FAILED | CANCELLED}
终态只会进入一次；取消标志在每次重新查询与下载前后检查，取消后不会再发起轮询请求，也不会写入媒体存储。
被接受的取消（cancel() 返回 True）一定以 CANCELLED 结束。
"""

from __future__ import annotations

import asyncio
from typing import NoReturn

from src.config import config
from src.core.enums import TERMINAL_POLL_STATES, PollState
from src.core.error_utils import sanitize_error_message
from src.core.exceptions import GenerationError, MissingPayloadError, OperationCancelled
from src.core.logger import logger
from src.models.gemini import GeminiOperation
from src.models.generation import ClassifiedError, VideoResult
from src.services.media.store import MediaStore, get_media_store
from src.services.orchestration.error_classifier import ErrorClassifier
from src.services.provider.base import GenerationProvider


class VideoOperationPoller:
    """单个视频任务的轮询状态机"""

    def __init__(
        self,
        provider: GenerationProvider,
        media_store: MediaStore | None = None,
        *,
        classifier: ErrorClassifier | None = None,
        poll_interval_seconds: float | None = None,
        max_poll_count: int | None = None,
    ) -> None:
        self._provider = provider
        self._media_store = media_store or get_media_store()
        self._classifier = classifier or ErrorClassifier()
        self._poll_interval = (
            config.video_poll_interval_seconds
            if poll_interval_seconds is None
            else poll_interval_seconds
        )
        self._max_poll_count = (
            config.video_max_poll_count if max_poll_count is None else max_poll_count
        )
        self._cancel_event = asyncio.Event()

        self.state = PollState.IDLE
        self.operation: GeminiOperation | None = None
        self.poll_count = 0
        self.result: VideoResult | None = None
        self.error: ClassifiedError | None = None
        self.error_code: str | None = None

    @property
    def operation_name(self) -> str | None:
        return self.operation.name if self.operation else None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_POLL_STATES

    def submit(self, operation: GeminiOperation) -> None:
        if self.state != PollState.IDLE:
            raise RuntimeError(f"Poller already submitted (state={self.state.value})")
        self.operation = operation
        self._transition(PollState.SUBMITTED)

    def cancel(self) -> bool:
        """
        请求取消

        Returns:
            False 表示任务已处于终态，取消无效
        """
        if self.is_terminal:
            return False
        self._cancel_event.set()
        # 尚未开始轮询时直接进入终态
        if self.state in (PollState.IDLE, PollState.SUBMITTED):
            self._transition(PollState.CANCELLED)
        return True

    async def run(self) -> VideoResult:
        if self.state == PollState.CANCELLED:
            raise OperationCancelled(self.operation_name)
        if self.state != PollState.SUBMITTED or self.operation is None:
            raise RuntimeError(f"Poller cannot run from state {self.state.value}")

        self._transition(PollState.POLLING)
        try:
            return await self._poll_until_done(self.operation)
        except asyncio.CancelledError:
            if not self.is_terminal:
                self._transition(PollState.CANCELLED)
            raise

    async def _poll_until_done(self, operation: GeminiOperation) -> VideoResult:
        while True:
            if self._cancel_event.is_set():
                self._mark_cancelled()
            if operation.done:
                return await self._complete(operation)
            if self.poll_count >= self._max_poll_count:
                self._fail(
                    self._classifier.classify(
                        f"Video generation timed out after {self.poll_count} polls"
                    ),
                    "poll_timeout",
                )

            await self._wait_interval()
            # 等待期间可能被取消：在发起下一次查询前再次检查
            if self._cancel_event.is_set():
                self._mark_cancelled()

            try:
                operation = await self._provider.get_operation(operation.name)
            except Exception as exc:
                if self._cancel_event.is_set():
                    self._mark_cancelled()
                self._fail(self._classifier.classify(exc), "poll_error")
            self.poll_count += 1
            self.operation = operation
            logger.debug(
                "[VideoPoller] {} poll #{} done={}", operation.name, self.poll_count, operation.done
            )

    async def _wait_interval(self) -> None:
        """等待一个轮询间隔，取消时提前唤醒"""
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=self._poll_interval)
        except asyncio.TimeoutError:
            pass

    async def _complete(self, operation: GeminiOperation) -> VideoResult:
        if operation.error:
            self._fail(
                self._classifier.classify(operation.error_message or "Video generation failed"),
                "operation_failed",
            )

        video_uri = operation.video_uri
        if not video_uri:
            reasons = operation.filtered_reasons
            if reasons:
                self._fail(
                    self._classifier.classify(f"Video blocked by safety filters: {reasons[0]}"),
                    "content_filtered",
                )
            # 已完成但无产物：单独标记，不重试
            self._fail(
                self._classifier.classify(
                    MissingPayloadError(
                        "Video generation finished, but no download link was provided."
                    )
                ),
                "missing_payload",
            )

        try:
            asset = await self._provider.fetch_asset(video_uri)
        except Exception as exc:
            if self._cancel_event.is_set():
                self._mark_cancelled()
            self._fail(self._classifier.classify(exc), "fetch_failed")
        # 下载期间被取消：不写入媒体存储
        if self._cancel_event.is_set():
            self._mark_cancelled()

        media_ref = self._media_store.put(asset.data, asset.mime_type)
        self.result = VideoResult(
            operation_name=operation.name,
            media_ref=media_ref,
            mime_type=asset.mime_type,
        )
        self._transition(PollState.SUCCEEDED)
        logger.info(
            "[VideoPoller] {} succeeded after {} polls -> {}",
            operation.name,
            self.poll_count,
            media_ref,
        )
        return self.result

    def _fail(self, error: ClassifiedError, error_code: str) -> NoReturn:
        self.error = error
        self.error_code = error_code
        self._transition(PollState.FAILED)
        logger.warning(
            "[VideoPoller] {} failed code={} kind={}: {}",
            self.operation_name,
            error_code,
            error.kind.value,
            sanitize_error_message(error.detail or error.message),
        )
        raise GenerationError(error)

    def _mark_cancelled(self) -> NoReturn:
        self._transition(PollState.CANCELLED)
        logger.info(
            "[VideoPoller] {} cancelled after {} polls", self.operation_name, self.poll_count
        )
        raise OperationCancelled(self.operation_name)

    def _transition(self, new_state: PollState) -> None:
        if self.is_terminal:
            raise RuntimeError(
                f"Poller already terminal ({self.state.value}), cannot move to {new_state.value}"
            )
        logger.debug(
            "[VideoPoller] {} {} -> {}", self.operation_name, self.state.value, new_state.value
        )
        self.state = new_state
