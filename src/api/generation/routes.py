"""
生成服务端点

端点列表：
- POST /v1/generate - 按 mode 分发（视频模式返回 202 + 任务快照）
- POST /v1/videos - 提交视频任务
- GET /v1/videos/{job_id} - 查询视频任务
- POST /v1/videos/{job_id}/cancel - 取消视频任务
- GET /v1/media/{media_id} - 下载媒体资源

失败统一返回 {"error": {"kind": ..., "message": ...}}，HTTP 状态码由 kind 决定
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from src.api.generation.schemas import GenerateRequestBody, VideoRequestBody
from src.core.enums import ErrorKind, GenerationMode
from src.core.exceptions import GenerationError
from src.services.generation.request_dispatcher import RequestDispatcher
from src.services.media.store import MediaStore
from src.services.video.job_registry import VideoJobRegistry, VideoJobSnapshot

router = APIRouter(prefix="/v1", tags=["Generation"])

ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.CREDENTIAL_SCOPE: 403,
    ErrorKind.CONTENT_BLOCKED: 422,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.DATA_FORMAT: 502,
    ErrorKind.UNKNOWN: 502,
}


def get_dispatcher(request: Request) -> RequestDispatcher:
    return request.app.state.dispatcher


def get_job_registry(request: Request) -> VideoJobRegistry:
    return request.app.state.video_jobs


def get_media_store(request: Request) -> MediaStore:
    return request.app.state.media_store


async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(exc.kind, 502),
        content={"error": exc.error.to_dict()},
    )


def _snapshot_response(snapshot: VideoJobSnapshot, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=snapshot.model_dump(mode="json"))


@router.post("/generate", response_model=None)
async def generate(
    body: GenerateRequestBody,
    dispatcher: RequestDispatcher = Depends(get_dispatcher),
    registry: VideoJobRegistry = Depends(get_job_registry),
) -> Any:
    """
    执行一次生成请求

    视频模式不阻塞等待，返回 202 与任务快照，之后通过 GET /v1/videos/{job_id} 查询
    """
    generation_request = body.to_request()
    if generation_request.mode == GenerationMode.GENERATE_VIDEO:
        return _snapshot_response(await registry.start(generation_request), status_code=202)
    result = await dispatcher.dispatch(generation_request)
    return result.model_dump(mode="json")


@router.post("/videos", response_model=None)
async def create_video(
    body: VideoRequestBody,
    registry: VideoJobRegistry = Depends(get_job_registry),
) -> JSONResponse:
    return _snapshot_response(await registry.start(body.to_request()), status_code=202)


@router.get("/videos/{job_id}", response_model=None)
async def get_video(
    job_id: str,
    registry: VideoJobRegistry = Depends(get_job_registry),
) -> JSONResponse:
    snapshot = registry.get(job_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Video job {job_id} not found")
    return _snapshot_response(snapshot)


@router.post("/videos/{job_id}/cancel", response_model=None)
async def cancel_video(
    job_id: str,
    registry: VideoJobRegistry = Depends(get_job_registry),
) -> JSONResponse:
    snapshot = registry.cancel(job_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Video job {job_id} not found")
    return _snapshot_response(snapshot)


@router.get("/media/{media_id}")
async def get_media(
    media_id: str,
    store: MediaStore = Depends(get_media_store),
) -> Response:
    media = store.get(media_id)
    if media is None:
        raise HTTPException(status_code=404, detail=f"Media {media_id} not found")
    return Response(content=media.data, media_type=media.mime_type)
