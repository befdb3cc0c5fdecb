"""
生成相关枚举定义
"""

from enum import Enum


class GenerationMode(str, Enum):
    """生成模式 - 决定 Provider 调用形态"""

    CHAT = "chat"  # 多轮对话，可选联网搜索
    QUICK_CHAT = "quick_chat"  # 轻量模型单轮对话
    COMPLEX_QUERY = "complex_query"  # 推理模型 + thinking budget
    SEARCH_WEB = "search_web"  # 强制联网搜索
    GENERATE_IMAGE = "generate_image"
    EDIT_IMAGE = "edit_image"  # 需要附件
    ANALYZE_IMAGE = "analyze_image"  # 需要附件
    GENERATE_DOCUMENT = "generate_document"  # 骨架 + 并发配图
    GENERATE_VIDEO = "generate_video"  # 长任务 + 轮询


TEXT_MODES = frozenset(
    {
        GenerationMode.CHAT,
        GenerationMode.QUICK_CHAT,
        GenerationMode.COMPLEX_QUERY,
        GenerationMode.SEARCH_WEB,
    }
)

ATTACHMENT_REQUIRED_MODES = frozenset({GenerationMode.EDIT_IMAGE, GenerationMode.ANALYZE_IMAGE})


class ErrorKind(str, Enum):
    """错误分类（封闭集合）"""

    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    CONTENT_BLOCKED = "content_blocked"
    DATA_FORMAT = "data_format"
    CREDENTIAL_SCOPE = "credential_scope"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class DocumentStyle(str, Enum):
    PROFESSIONAL = "professional"
    CREATIVE = "creative"
    MINIMALIST = "minimalist"


class PollState(str, Enum):
    """长任务轮询状态机"""

    IDLE = "idle"
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_POLL_STATES = frozenset({PollState.SUCCEEDED, PollState.FAILED, PollState.CANCELLED})

IMAGE_ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4")
VIDEO_ASPECT_RATIOS = ("16:9", "9:16")

# 配图失败或无配图提示时的显式占位值
NO_MEDIA = "none"


__all__ = [
    "GenerationMode",
    "TEXT_MODES",
    "ATTACHMENT_REQUIRED_MODES",
    "ErrorKind",
    "DocumentStyle",
    "PollState",
    "TERMINAL_POLL_STATES",
    "IMAGE_ASPECT_RATIOS",
    "VIDEO_ASPECT_RATIOS",
    "NO_MEDIA",
]
