"""Chunked media upload flow against a local upload endpoint."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from x_transport.clients.executor import XExecutor
from x_transport.exceptions import ApiResponseError, ProtocolViolation
from x_transport.services.media_service import ChunkedMediaUploader, MediaService

from .fixtures import MEDIA_UPLOAD_FINALIZE_RESPONSE

UPLOAD_PATH = "/1.1/media/upload.json"


def _commands(fake_api) -> list[str]:
    return [request.form["command"] for request in fake_api.requests]


@pytest.mark.asyncio
async def test_chunked_upload_runs_init_append_finalize(fake_api, authorizer) -> None:
    executor = XExecutor(authorizer)
    uploader = ChunkedMediaUploader(executor, chunk_size=4)
    data = b"0123456789"

    text = await uploader.upload(
        fake_api.url(UPLOAD_PATH),
        {"additional_owners": "783214", "unused": None},
        data,
        "media",
        "clip.mp4",
        "video/mp4",
        media_category="tweet_video",
        shared=True,
    )

    assert json.loads(text) == MEDIA_UPLOAD_FINALIZE_RESPONSE
    assert _commands(fake_api) == ["INIT", "APPEND", "APPEND", "APPEND", "FINALIZE"]

    init = fake_api.requests[0].form
    assert init == {
        "command": "INIT",
        "media_type": "video/mp4",
        "media_category": "tweet_video",
        "shared": "true",
        "total_bytes": "10",
        "additional_owners": "783214",
    }

    appends = [request.form for request in fake_api.requests[1:4]]
    assert [form["segment_index"] for form in appends] == ["0", "1", "2"]
    assert all(form["media_id"] == "9876543210987654321" for form in appends)
    assert b"".join(form["media"]["data"] for form in appends) == data
    assert appends[0]["media"]["filename"] == "clip.mp4"
    assert appends[0]["media"]["content_type"] == "video/mp4"

    assert fake_api.requests[4].form == {
        "command": "FINALIZE",
        "media_id": "9876543210987654321",
    }


@pytest.mark.asyncio
async def test_executor_upload_media_uses_default_chunking(fake_api, authorizer) -> None:
    executor = XExecutor(authorizer)

    await executor.upload_media(
        fake_api.url(UPLOAD_PATH), None, b"tiny", "media", "a.png", "image/png"
    )

    assert _commands(fake_api) == ["INIT", "APPEND", "FINALIZE"]
    assert "media_category" not in fake_api.requests[0].form
    assert "shared" not in fake_api.requests[0].form


@pytest.mark.asyncio
async def test_failed_segment_aborts_upload(fake_api, authorizer) -> None:
    fake_api.fail_segment = 1
    uploader = ChunkedMediaUploader(XExecutor(authorizer), chunk_size=2)

    with pytest.raises(ApiResponseError) as exc:
        await uploader.upload(
            fake_api.url(UPLOAD_PATH), None, b"abcdef", "media", "a.gif", "image/gif"
        )

    assert exc.value.code == 324
    assert _commands(fake_api) == ["INIT", "APPEND", "APPEND"]


@pytest.mark.asyncio
async def test_init_without_media_id_is_protocol_violation(fake_api, authorizer) -> None:
    fake_api.init_response = {"expires_after_secs": 86400}
    uploader = ChunkedMediaUploader(XExecutor(authorizer))

    with pytest.raises(ProtocolViolation):
        await uploader.upload(
            fake_api.url(UPLOAD_PATH), None, b"abc", "media", "a.png", "image/png"
        )

    assert _commands(fake_api) == ["INIT"]


@pytest.mark.asyncio
async def test_media_service_uploads_validated_file(fake_api, authorizer, tmp_path: Path) -> None:
    image = tmp_path / "image.png"
    image.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\0" * 100)
    service = MediaService(XExecutor(authorizer), upload_url=fake_api.url(UPLOAD_PATH))

    result = await service.upload_image(image)

    assert result.media_id == "9876543210987654321"
    assert result.processing_info is not None
    assert result.processing_info.state == "pending"
    assert fake_api.requests[0].form["media_category"] == "tweet_image"
    assert fake_api.requests[1].form["media"]["data"] == image.read_bytes()
