"""
统一日志系统 - 基于 loguru

级别约定:
- DEBUG: 每次轮询、每个配图分支的细节
- INFO:  请求分发、任务提交、状态终结
- WARNING: 单个配图失败等被吸收的错误
- ERROR: 整个请求失败（已分类）

环境变量:
- LOG_LEVEL: 控制台级别，默认 INFO
- LOG_DISABLE_FILE: true 时不写文件（测试默认开启）
- LOG_DIR: 文件日志目录，默认 <项目根>/logs

使用方式:
    from src.core.logger import logger

    logger.info("dispatch mode={}", mode)
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from loguru import logger

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DISABLE_FILE_LOG = os.getenv("LOG_DISABLE_FILE", "false").lower() == "true"
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = Path(os.getenv("LOG_DIR", str(PROJECT_ROOT / "logs")))

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{message}</cyan>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

logger.remove()

logger.add(
    sys.stdout,
    format=CONSOLE_FORMAT,
    level=LOG_LEVEL,
    colorize=sys.stdout.isatty(),
)

if not DISABLE_FILE_LOG:
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    # enqueue=False：同步写入，避免多进程信号量泄漏
    logger.add(  # type: ignore[call-overload]
        LOG_DIR / "generation.log",
        level="DEBUG",
        format=FILE_FORMAT,
        rotation="50 MB",
        retention="14 days",
        compression="gz",
        enqueue=False,
        encoding="utf-8",
        catch=True,
    )

# httpx 每个请求都会打 INFO，轮询场景下噪音太大
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

__all__ = ["logger"]
