"""
服务配置 - 基于 pydantic-settings，从环境变量读取并校验

字段名即环境变量名（不区分大小写），如 video_poll_interval_seconds <- VIDEO_POLL_INTERVAL_SECONDS。
非法取值在启动时抛出 pydantic ValidationError。

使用方式:
    from src.config import config

    config.gemini_api_key
    config.video_poll_interval_seconds
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """运行时配置（进程启动时读取一次）"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Provider 凭据：不透明字符串，原样注入请求头
    gemini_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY")
    )
    gemini_base_url: str = "https://generativelanguage.googleapis.com"

    # 模型选择
    chat_model: str = "gemini-2.5-flash"
    quick_chat_model: str = "gemini-flash-lite-latest"
    complex_model: str = "gemini-2.5-pro"
    complex_thinking_budget: int = Field(default=32768, ge=0)
    image_model: str = "imagen-4.0-generate-001"
    image_output_mime_type: str = "image/jpeg"
    image_edit_model: str = "gemini-2.5-flash-image"
    vision_model: str = "gemini-2.5-flash"
    document_model: str = "gemini-2.5-pro"
    video_model: str = "veo-3.1-fast-generate-preview"
    video_resolution: str = "1080p"

    # 文档模式下配图固定比例
    document_image_aspect_ratio: str = "16:9"

    # 视频轮询：10 秒间隔，最多 360 次（约 1 小时）
    video_poll_interval_seconds: float = Field(default=10.0, ge=0)
    video_max_poll_count: int = Field(default=360, ge=1)
    # 后台视频任务上限，超出后淘汰最早结束的任务
    video_job_max_items: int = Field(default=256, ge=1)

    # HTTP 客户端
    http_connect_timeout: float = Field(default=10.0, gt=0)
    http_read_timeout: float = Field(default=300.0, gt=0)
    http_write_timeout: float = Field(default=60.0, gt=0)
    http_pool_timeout: float = Field(default=10.0, gt=0)
    http_max_connections: int = Field(default=100, ge=1)
    http_keepalive_connections: int = Field(default=20, ge=0)
    http_keepalive_expiry: float = Field(default=30.0, ge=0)

    # 媒体存储上限（LRU 淘汰）
    media_store_max_items: int = Field(default=256, ge=1)


config = Config()
