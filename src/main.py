"""
应用入口

    uvicorn src.main:app
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from src.api.generation import generation_error_handler, router as generation_router
from src.clients.http_client import HTTPClientPool
from src.core.exceptions import GenerationError
from src.core.logger import logger
from src.services.generation.request_dispatcher import RequestDispatcher
from src.services.media.store import MediaStore, get_media_store
from src.services.provider.base import GenerationProvider
from src.services.provider.gemini_client import GeminiClient
from src.services.video.job_registry import VideoJobRegistry


def create_app(
    provider: GenerationProvider | None = None,
    media_store: MediaStore | None = None,
) -> FastAPI:
    provider = provider or GeminiClient()
    media_store = media_store or get_media_store()
    dispatcher = RequestDispatcher(provider, media_store=media_store)
    video_jobs = VideoJobRegistry(dispatcher)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("生成服务启动")
        yield
        await video_jobs.shutdown()
        await HTTPClientPool.close_all()
        logger.info("生成服务已关闭")

    app = FastAPI(title="GenStudio", lifespan=lifespan)
    app.state.dispatcher = dispatcher
    app.state.video_jobs = video_jobs
    app.state.media_store = media_store
    app.add_exception_handler(GenerationError, generation_error_handler)
    app.include_router(generation_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("src.main:app", host="0.0.0.0", port=8084)
