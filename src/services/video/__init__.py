"""
视频相关服务
"""

from src.services.video.job_registry import VideoJob, VideoJobRegistry, VideoJobSnapshot
from src.services.video.task_poller import VideoOperationPoller

__all__ = [
    "VideoOperationPoller",
    "VideoJob",
    "VideoJobRegistry",
    "VideoJobSnapshot",
]
