"""
全局HTTP客户端池管理
避免每次请求都创建新的AsyncClient

- 默认客户端：全局复用单一客户端（Provider 调用、轮询、资源下载）
"""

from __future__ import annotations

import asyncio

import httpx

from src.config import config
from src.core.logger import logger

# 模块级锁，避免类属性延迟初始化的竞态条件
_default_client_lock = asyncio.Lock()


def _default_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=config.http_connect_timeout,
        read=config.http_read_timeout,
        write=config.http_write_timeout,
        pool=config.http_pool_timeout,
    )


class HTTPClientPool:
    """
    全局HTTP客户端池（仅类方法，不实例化）

    管理可重用的httpx.AsyncClient实例,避免频繁创建/销毁连接
    """

    _default_client: httpx.AsyncClient | None = None

    @classmethod
    async def get_default_client_async(cls) -> httpx.AsyncClient:
        """获取默认的HTTP客户端（异步线程安全版本）"""
        if cls._default_client is not None:
            return cls._default_client

        async with _default_client_lock:
            # 双重检查，避免重复创建
            if cls._default_client is None:
                cls._default_client = httpx.AsyncClient(
                    timeout=_default_timeout(),
                    limits=httpx.Limits(
                        max_connections=config.http_max_connections,
                        max_keepalive_connections=config.http_keepalive_connections,
                        keepalive_expiry=config.http_keepalive_expiry,
                    ),
                    # 视频下载地址会 302 到存储桶
                    follow_redirects=True,
                )
                logger.info(
                    "全局HTTP客户端池已初始化: max_connections={}, keepalive={}, keepalive_expiry={}s",
                    config.http_max_connections,
                    config.http_keepalive_connections,
                    config.http_keepalive_expiry,
                )
        return cls._default_client

    @classmethod
    async def close_all(cls) -> None:
        """关闭所有客户端（应用关闭时调用）"""
        if cls._default_client is not None:
            await cls._default_client.aclose()
            cls._default_client = None
        logger.info("HTTP客户端池已关闭")
