import base64
import time
from typing import Any
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from src.core.exceptions import ProviderCallError
from src.main import create_app
from src.services.media.store import MediaStore
from tests.services.helpers import make_provider, pending_operation


def _wait_for_state(client: TestClient, job_id: str, state: str) -> dict[str, Any]:
    body: dict[str, Any] = {}
    for _ in range(100):
        body = client.get(f"/v1/videos/{job_id}").json()
        if body["state"] == state:
            return body
        time.sleep(0.01)
    raise AssertionError(f"job {job_id} stuck in {body.get('state')}")


def test_generate_text() -> None:
    provider = make_provider()
    with TestClient(create_app(provider, MediaStore(max_items=8))) as client:
        response = client.post("/v1/generate", json={"mode": "chat", "prompt": "hi"})

    assert response.status_code == 200
    assert response.json() == {"kind": "text", "text": "hello", "references": []}


def test_missing_attachment_is_bad_request() -> None:
    provider = make_provider()
    with TestClient(create_app(provider, MediaStore(max_items=8))) as client:
        response = client.post("/v1/generate", json={"mode": "edit_image", "prompt": "blue"})

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "validation"
    assert provider.generate_content.await_count == 0


def test_attachment_is_decoded_from_base64() -> None:
    provider = make_provider()
    payload = {
        "mode": "analyze_image",
        "prompt": "what is this?",
        "attachment": {"data": base64.b64encode(b"raw-image").decode(), "mime_type": "image/webp"},
    }
    with TestClient(create_app(provider, MediaStore(max_items=8))) as client:
        response = client.post("/v1/generate", json=payload)

    assert response.status_code == 200
    inline = provider.generate_content.await_args.args[1][0].parts[0]["inlineData"]
    assert inline == {"mimeType": "image/webp", "data": base64.b64encode(b"raw-image").decode()}


def test_rate_limit_maps_to_429() -> None:
    provider = make_provider(
        generate_content=AsyncMock(side_effect=ProviderCallError("HTTP 429: quota exceeded"))
    )
    with TestClient(create_app(provider, MediaStore(max_items=8))) as client:
        response = client.post("/v1/generate", json={"mode": "quick_chat", "prompt": "hi"})

    assert response.status_code == 429
    assert response.json()["error"]["kind"] == "rate_limited"


def test_video_job_completes_and_media_is_downloadable() -> None:
    provider = make_provider()
    with TestClient(create_app(provider, MediaStore(max_items=8))) as client:
        started = client.post("/v1/videos", json={"prompt": "waves"})
        assert started.status_code == 202
        job_id = started.json()["job_id"]

        body = _wait_for_state(client, job_id, "succeeded")
        media_ref = body["result"]["media_ref"]
        media = client.get(f"/v1/{media_ref}")

    assert body["operation_name"] == "models/veo/operations/op-1"
    assert media.status_code == 200
    assert media.content == b"mp4-bytes"
    assert media.headers["content-type"] == "video/mp4"


def test_generate_in_video_mode_returns_job() -> None:
    with TestClient(create_app(make_provider(), MediaStore(max_items=8))) as client:
        response = client.post("/v1/generate", json={"mode": "generate_video", "prompt": "waves"})

    assert response.status_code == 202
    assert response.json()["kind"] == "video_job"


def test_cancelled_video_job_stops_polling() -> None:
    provider = make_provider(
        generate_video=AsyncMock(return_value=pending_operation()),
        get_operation=AsyncMock(return_value=pending_operation()),
    )
    with TestClient(create_app(provider, MediaStore(max_items=8))) as client:
        job_id = client.post("/v1/videos", json={"prompt": "waves"}).json()["job_id"]
        cancel = client.post(f"/v1/videos/{job_id}/cancel")
        body = _wait_for_state(client, job_id, "cancelled")

    assert cancel.status_code == 200
    assert body["result"] is None
    assert provider.get_operation.await_count == 0


def test_unknown_job_and_media_are_404() -> None:
    with TestClient(create_app(make_provider(), MediaStore(max_items=8))) as client:
        assert client.get("/v1/videos/nope").status_code == 404
        assert client.post("/v1/videos/nope/cancel").status_code == 404
        assert client.get("/v1/media/nope").status_code == 404


def test_invalid_video_aspect_ratio_is_rejected_before_submit() -> None:
    provider = make_provider()
    with TestClient(create_app(provider, MediaStore(max_items=8))) as client:
        response = client.post("/v1/videos", json={"prompt": "waves", "aspect_ratio": "4:3"})

    assert response.status_code == 400
    assert provider.generate_video.await_count == 0
