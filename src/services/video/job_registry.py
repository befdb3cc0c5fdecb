"""
视频任务注册表 - 后台运行视频生成任务

start() 提交长任务并在后台轮询，get() 查看快照，cancel() 取消轮询
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from pydantic import BaseModel

from src.config import config
from src.core.enums import PollState
from src.core.exceptions import GenerationError, OperationCancelled
from src.core.logger import logger
from src.models.generation import GenerationRequest, VideoResult
from src.services.video.task_poller import VideoOperationPoller

if TYPE_CHECKING:
    from src.services.generation.request_dispatcher import RequestDispatcher


class VideoJobSnapshot(BaseModel):
    """对外暴露的任务状态（长任务句柄）"""

    kind: str = "video_job"
    job_id: str
    state: PollState
    operation_name: str | None = None
    poll_count: int = 0
    created_at: datetime
    result: VideoResult | None = None
    error: dict[str, Any] | None = None


@dataclass
class VideoJob:
    job_id: str
    request_id: str
    poller: VideoOperationPoller
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    task: asyncio.Task[Any] | None = None

    def snapshot(self) -> VideoJobSnapshot:
        return VideoJobSnapshot(
            job_id=self.job_id,
            state=self.poller.state,
            operation_name=self.poller.operation_name,
            poll_count=self.poller.poll_count,
            created_at=self.created_at,
            result=self.poller.result,
            error=self.poller.error.to_dict() if self.poller.error else None,
        )


class VideoJobRegistry:
    """
    后台视频任务表

    超过 max_items 时按提交顺序淘汰已结束的任务；运行中的任务不会被淘汰
    """

    def __init__(self, dispatcher: RequestDispatcher, max_items: int | None = None) -> None:
        self._dispatcher = dispatcher
        self._max_items = max_items or config.video_job_max_items
        self._jobs: OrderedDict[str, VideoJob] = OrderedDict()

    def __len__(self) -> int:
        return len(self._jobs)

    async def start(self, request: GenerationRequest) -> VideoJobSnapshot:
        """提交失败时直接抛 GenerationError，不登记任务"""
        poller = await self._dispatcher.start_video(request)
        job = VideoJob(job_id=uuid4().hex, request_id=request.request_id, poller=poller)
        self._prune()
        self._jobs[job.job_id] = job
        job.task = asyncio.create_task(self._drive(job), name=f"video-job-{job.job_id}")
        logger.info("[VideoJobs] {} started for operation {}", job.job_id, poller.operation_name)
        return job.snapshot()

    def _prune(self) -> None:
        """为新任务腾出位置：从最早的任务开始移除已结束的"""
        overflow = len(self._jobs) + 1 - self._max_items
        if overflow <= 0:
            return
        finished = [
            job_id
            for job_id, job in self._jobs.items()
            if job.poller.is_terminal and (job.task is None or job.task.done())
        ]
        for job_id in finished[:overflow]:
            del self._jobs[job_id]
        logger.debug("[VideoJobs] pruned {} finished jobs", min(overflow, len(finished)))

    async def _drive(self, job: VideoJob) -> None:
        try:
            await job.poller.run()
        except (GenerationError, OperationCancelled) as exc:
            # 终态已记录在 poller 上，由 snapshot 暴露
            logger.debug("[VideoJobs] {} finished with {}", job.job_id, type(exc).__name__)

    def get(self, job_id: str) -> VideoJobSnapshot | None:
        job = self._jobs.get(job_id)
        return job.snapshot() if job else None

    def cancel(self, job_id: str) -> VideoJobSnapshot | None:
        job = self._jobs.get(job_id)
        if job is None:
            return None
        if job.poller.cancel():
            logger.info("[VideoJobs] {} cancel requested", job_id)
        return job.snapshot()

    async def shutdown(self) -> None:
        """取消全部未完成任务并等待其结束"""
        pending = [job for job in self._jobs.values() if not job.poller.is_terminal]
        for job in pending:
            job.poller.cancel()
        tasks = [job.task for job in pending if job.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("[VideoJobs] shutdown, {} jobs cancelled", len(pending))
