"""
Media upload workflows wrapping X's chunked upload process.
"""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

from pydantic import ValidationError

from x_transport.exceptions import CancellationError, MediaValidationError, ProtocolViolation
from x_transport.models import MediaUploadResult
from x_transport.utils.chunks import split_chunks
from x_transport.utils.url import clean_parameters

logger = logging.getLogger(__name__)

CHUNK_SIZE = 5_000_000
IMAGE_MAX_BYTES = 5 * 1024 * 1024
VIDEO_MAX_BYTES = 512 * 1024 * 1024
ALLOWED_IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}
ALLOWED_VIDEO_MIME_TYPES = {"video/mp4"}
UPLOAD_URL = "https://upload.twitter.com/1.1/media/upload.json"


def _init_media_id(response: str) -> str:
    """Return the non-negative JSON integer ``media_id`` of an INIT response as a string."""
    try:
        payload = json.loads(response)
    except ValueError as exc:
        raise ProtocolViolation(f"INIT response is not JSON: {response!r}") from exc

    value = payload.get("media_id") if isinstance(payload, dict) else None
    if type(value) is not int or value < 0:
        raise ProtocolViolation(
            f"INIT response did not contain an integer media_id: {response!r}"
        )
    return str(value)


class MultipartClient(Protocol):
    """Protocol capturing the multipart primitive consumed by the uploader."""

    async def execute_multipart(
        self,
        url: str,
        params: Mapping[str, str | None] | None,
        data: bytes | None = None,
        field_name: str | None = None,
        file_name: str | None = None,
        content_type: str | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> str:
        ...


@dataclass(slots=True)
class ChunkedMediaUploader:
    """
    Runs INIT, APPEND and FINALIZE for one upload at a time.

    Segments are sent strictly in order, each awaited before the next, so only
    one chunk is held in flight. Nothing is retried: any failure aborts the
    upload and propagates to the caller.
    """

    client: MultipartClient
    chunk_size: int = CHUNK_SIZE

    async def upload(
        self,
        url: str,
        params: Mapping[str, str | None] | None,
        data: bytes,
        field_name: str,
        file_name: str,
        content_type: str | None,
        *,
        media_category: str | None = None,
        shared: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> str:
        """Upload ``data`` and return the FINALIZE response text."""
        media_id = await self.init(
            url,
            params,
            total_bytes=len(data),
            content_type=content_type,
            media_category=media_category,
            shared=shared,
            cancel=cancel,
        )
        await self.append_chunks(
            url, media_id, data, field_name, file_name, content_type, cancel=cancel
        )
        return await self.finalize(url, media_id, cancel=cancel)

    async def init(
        self,
        url: str,
        params: Mapping[str, str | None] | None,
        *,
        total_bytes: int,
        content_type: str | None,
        media_category: str | None = None,
        shared: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> str:
        """
        Start an upload session and return its media id.

        Raises:
            ProtocolViolation: when the response has no integer ``media_id``.
        """
        fields: dict[str, str | None] = {
            "command": "INIT",
            "media_type": content_type or "",
        }
        if media_category and media_category.strip():
            fields["media_category"] = media_category
        if shared:
            fields["shared"] = "true"
        fields["total_bytes"] = str(total_bytes)
        for name, value in clean_parameters(params).items():
            fields.setdefault(name, value)

        response = await self.client.execute_multipart(url, fields, cancel=cancel)
        media_id = _init_media_id(response)

        logger.debug("INIT media_id=%s total_bytes=%d", media_id, total_bytes)
        return media_id

    async def append_chunks(
        self,
        url: str,
        media_id: str,
        data: bytes,
        field_name: str,
        file_name: str,
        content_type: str | None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> int:
        """Send every segment in order and return how many were sent."""
        sent = 0
        for segment_index, chunk in split_chunks(data, self.chunk_size):
            if cancel is not None and cancel.is_set():
                raise CancellationError(
                    f"Upload of media {media_id} cancelled at segment {segment_index}."
                )
            await self.client.execute_multipart(
                url,
                {
                    "command": "APPEND",
                    "media_id": media_id,
                    "segment_index": str(segment_index),
                },
                chunk,
                field_name,
                file_name,
                content_type,
                cancel=cancel,
            )
            sent += 1
            logger.debug("APPEND media_id=%s segment_index=%d", media_id, segment_index)
        return sent

    async def finalize(
        self, url: str, media_id: str, *, cancel: asyncio.Event | None = None
    ) -> str:
        response = await self.client.execute_multipart(
            url, {"command": "FINALIZE", "media_id": media_id}, cancel=cancel
        )
        logger.debug("FINALIZE media_id=%s", media_id)
        return response


@dataclass(slots=True)
class MediaService:
    """File based uploads with local validation on top of the chunked uploader."""

    client: MultipartClient
    upload_url: str = UPLOAD_URL
    chunk_size: int = CHUNK_SIZE

    async def upload_image(
        self, path: Path, *, media_category: str = "tweet_image", shared: bool = False
    ) -> MediaUploadResult:
        """
        Upload image file (up to 5MB).

        Args:
            path: Path to image file (jpeg, png, webp, gif)
            media_category: Media category for X API (default: tweet_image)
            shared: Allow the media to be reused across direct messages

        Returns:
            MediaUploadResult parsed from the FINALIZE response

        Raises:
            MediaValidationError: If file size exceeds limit or MIME type unsupported
        """
        path = self._validate_path(path)
        mime_type = self._validate(path, IMAGE_MAX_BYTES, ALLOWED_IMAGE_MIME_TYPES, "Image")
        return await self._upload(path, mime_type, media_category, shared)

    async def upload_video(
        self, path: Path, *, media_category: str = "tweet_video", shared: bool = False
    ) -> MediaUploadResult:
        """
        Upload video file (up to 512MB).

        Raises:
            MediaValidationError: If file size exceeds limit or MIME type unsupported
        """
        path = self._validate_path(path)
        mime_type = self._validate(path, VIDEO_MAX_BYTES, ALLOWED_VIDEO_MIME_TYPES, "Video")
        return await self._upload(path, mime_type, media_category, shared)

    async def _upload(
        self, path: Path, mime_type: str, media_category: str, shared: bool
    ) -> MediaUploadResult:
        uploader = ChunkedMediaUploader(self.client, chunk_size=self.chunk_size)
        response = await uploader.upload(
            self.upload_url,
            None,
            path.read_bytes(),
            "media",
            path.name,
            mime_type,
            media_category=media_category,
            shared=shared,
        )
        try:
            return MediaUploadResult.from_api(response)
        except (ValidationError, ValueError) as exc:
            raise ProtocolViolation(
                f"FINALIZE response could not be parsed: {response!r}"
            ) from exc

    @staticmethod
    def _validate_path(path: Path) -> Path:
        resolved = path.expanduser()
        if not resolved.exists() or not resolved.is_file():
            raise MediaValidationError(f"Media file '{path}' does not exist or is not a file.")
        return resolved

    @staticmethod
    def _validate(path: Path, max_bytes: int, allowed: set[str], kind: str) -> str:
        size = path.stat().st_size
        if size > max_bytes:
            raise MediaValidationError(
                f"{kind} '{path}' exceeds the {max_bytes} byte size limit."
            )
        mime_type, _ = mimetypes.guess_type(path.name)
        if mime_type not in allowed:
            raise MediaValidationError(
                f"Unsupported {kind.lower()} MIME type '{mime_type}' for '{path.name}'."
            )
        return mime_type
