"""Local aiohttp application standing in for the X API."""

from __future__ import annotations

import asyncio
import gzip
import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from .fixtures import (
    ERROR_ONLY_RESPONSE,
    MEDIA_UPLOAD_FINALIZE_RESPONSE,
    MEDIA_UPLOAD_IMAGE_RESPONSE,
    MEDIA_UPLOAD_INIT_RESPONSE,
    NOT_FOUND_PROBLEM,
    PARTIAL_ERROR_RESPONSE,
    POST_RESPONSE,
    RATE_LIMIT_ERROR_RESPONSE,
    RATE_LIMIT_HEADERS,
    UNAUTHORIZED_PROBLEM,
)

HOLD_TIMEOUT = 5.0


@dataclass
class RecordedRequest:
    method: str
    path: str
    query: dict[str, str]
    headers: dict[str, str]
    body: bytes = b""
    form: dict[str, Any] = field(default_factory=dict)


class FakeXApi:
    """Routes mimicking the X endpoints the executor talks to."""

    def __init__(self) -> None:
        self.requests: list[RecordedRequest] = []
        self.stream_chunks: list[bytes] = []
        self.hold_stream_open = False
        self.hold_stream_headers = False
        self.init_response: Any = MEDIA_UPLOAD_INIT_RESPONSE
        self.fail_segment: int | None = None
        self.release = asyncio.Event()
        self.base_url = ""

        self.app = web.Application(client_max_size=16 * 1024 * 1024)
        self.app.router.add_get("/2/tweets/search/stream", self.stream)
        self.app.router.add_get("/2/stream/unauthorized", self.stream_unauthorized)
        self.app.router.add_get("/2/tweets/{id}", self.get_post)
        self.app.router.add_get("/2/partial", self.partial)
        self.app.router.add_get("/2/errors-only", self.errors_only)
        self.app.router.add_get("/2/rate-limited", self.rate_limited)
        self.app.router.add_get("/2/gzip", self.gzipped)
        self.app.router.add_get("/2/slow", self.slow)
        self.app.router.add_route("*", "/2/json", self.echo)
        self.app.router.add_route("*", "/1.1/form", self.echo)
        self.app.router.add_post("/1.1/media/upload.json", self.upload)

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _record(self, request: web.Request, *, multipart: bool = False) -> RecordedRequest:
        recorded = RecordedRequest(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            headers=dict(request.headers),
        )
        if multipart:
            form = await request.post()
            for name, value in form.items():
                if isinstance(value, web.FileField):
                    recorded.form[name] = {
                        "filename": value.filename,
                        "content_type": value.content_type,
                        "data": value.file.read(),
                    }
                else:
                    recorded.form[name] = value
        else:
            recorded.body = await request.read()
        self.requests.append(recorded)
        return recorded

    async def _hold(self) -> None:
        try:
            await asyncio.wait_for(self.release.wait(), HOLD_TIMEOUT)
        except asyncio.TimeoutError:
            pass

    async def get_post(self, request: web.Request) -> web.Response:
        await self._record(request)
        if request.match_info["id"] == "404":
            return web.json_response(NOT_FOUND_PROBLEM, status=404)
        return web.json_response(POST_RESPONSE, headers=RATE_LIMIT_HEADERS)

    async def partial(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response(PARTIAL_ERROR_RESPONSE)

    async def errors_only(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response(ERROR_ONLY_RESPONSE)

    async def rate_limited(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response(
            RATE_LIMIT_ERROR_RESPONSE, status=429, headers=RATE_LIMIT_HEADERS
        )

    async def gzipped(self, request: web.Request) -> web.Response:
        await self._record(request)
        payload = json.dumps(POST_RESPONSE).encode("utf-8")
        return web.Response(
            body=gzip.compress(payload),
            headers={"Content-Encoding": "gzip", "Content-Type": "application/json"},
        )

    async def slow(self, request: web.Request) -> web.Response:
        await self._record(request)
        await self._hold()
        return web.json_response(POST_RESPONSE)

    async def echo(self, request: web.Request) -> web.Response:
        recorded = await self._record(request)
        return web.json_response({"data": {"body": recorded.body.decode("utf-8")}})

    async def upload(self, request: web.Request) -> web.Response:
        recorded = await self._record(request, multipart=True)
        command = recorded.form.get("command")
        if command == "INIT":
            if isinstance(self.init_response, str):
                return web.Response(text=self.init_response, content_type="application/json")
            return web.json_response(self.init_response, status=202)
        if command == "APPEND":
            if self.fail_segment is not None and recorded.form["segment_index"] == str(self.fail_segment):
                return web.json_response(
                    {"errors": [{"message": "Segment rejected", "code": 324}]}, status=400
                )
            return web.Response(status=204)
        if command == "FINALIZE":
            return web.json_response(MEDIA_UPLOAD_FINALIZE_RESPONSE, status=201)
        return web.json_response(MEDIA_UPLOAD_IMAGE_RESPONSE)

    async def stream(self, request: web.Request) -> web.StreamResponse:
        await self._record(request)
        if self.hold_stream_headers:
            await self._hold()
        response = web.StreamResponse(headers={"Content-Type": "application/json"})
        try:
            await response.prepare(request)
            for chunk in self.stream_chunks:
                await response.write(chunk)
                await asyncio.sleep(0)
            if self.hold_stream_open:
                await self._hold()
            await response.write_eof()
        except ConnectionError:
            pass
        return response

    async def stream_unauthorized(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response(UNAUTHORIZED_PROBLEM, status=401)


@pytest_asyncio.fixture
async def fake_api() -> AsyncIterator[FakeXApi]:
    api = FakeXApi()
    server = TestServer(api.app)
    await server.start_server()
    api.base_url = str(server.make_url("/")).rstrip("/")
    try:
        yield api
    finally:
        api.release.set()
        await server.close()
