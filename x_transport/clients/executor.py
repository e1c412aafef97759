"""
Executor that signs, sends and validates X API requests over aiohttp.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Coroutine, Mapping, TypeVar

import aiohttp
from aiohttp.client import DEFAULT_TIMEOUT
from pydantic import BaseModel

from x_transport.auth import DEFAULT_USER_AGENT, FORM_CONTENT_TYPE, Authorizer
from x_transport.clients.streaming import StreamSession, StreamState
from x_transport.config import ExecutorSettings
from x_transport.errors import raise_for_api_error
from x_transport.exceptions import (
    CancellationError,
    ConfigurationError,
    ConnectivityError,
    RequestTimeout,
)
from x_transport.models import ApiResponse, RequestDescriptor, ResponseMetadata, StreamFrame
from x_transport.services.media_service import ChunkedMediaUploader
from x_transport.utils.url import clean_parameters, encode_form

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
JSON_METHODS = {"POST", "PUT", "DELETE"}
STREAM_PLACEHOLDER = "{}"

T = TypeVar("T")
StreamCallback = Callable[[StreamFrame], Awaitable[None]]
Params = Mapping[str, str | None] | None


async def run_cancellable(coro: Coroutine[Any, Any, T], cancel: asyncio.Event | None) -> T:
    """
    Await ``coro`` unless ``cancel`` fires first.

    Raises:
        CancellationError: when ``cancel`` is set before or while ``coro`` runs.
    """
    if cancel is None:
        return await coro
    if cancel.is_set():
        coro.close()
        raise CancellationError("Operation cancelled before it started.")

    task = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        await asyncio.wait({task})
        raise
    finally:
        waiter.cancel()

    if task.done():
        return task.result()

    task.cancel()
    await asyncio.wait({task})
    raise CancellationError("Operation cancelled by caller.")


def serialize_json(body: Any) -> str:
    """Serialize a payload object to JSON text; ``None`` serializes to an empty body."""
    if body is None:
        return ""
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True, exclude_none=True)
    return json.dumps(body, default=_json_default)


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {k: v for k, v in dataclasses.asdict(value).items() if v is not None}
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _with_query(url: str, params: Mapping[str, str]) -> str:
    if not params:
        return url
    return f"{url}{'&' if '?' in url else '?'}{encode_form(params)}"


class XExecutor:
    """
    Sends authorized requests to the X API and reads its streams.

    Every call opens its own ``aiohttp.ClientSession``, so calls may run
    concurrently. The state shared between calls is the bound ``authorizer``,
    ``last_response`` (last writer wins) and the active stream, which
    :meth:`close_stream` may touch from another task.
    """

    def __init__(
        self,
        authorizer: Authorizer | None,
        *,
        settings: ExecutorSettings | None = None,
        log: logging.Logger | None = None,
        session_factory: Callable[..., aiohttp.ClientSession] = aiohttp.ClientSession,
    ) -> None:
        self.authorizer = authorizer
        self.settings = settings or ExecutorSettings()
        self.log = log
        self.stream_callback: StreamCallback | None = None
        self.last_response: ResponseMetadata | None = None
        self.stream_state = StreamState.IDLE
        self._session_factory = session_factory
        self._stream: StreamSession | None = None

    @property
    def user_agent(self) -> str:
        authorizer = self._require_authorizer()
        base = authorizer.user_agent or DEFAULT_USER_AGENT
        override = self.settings.user_agent
        if override and override.strip():
            return f"{override}, {base}"
        return base

    @property
    def is_stream_closed(self) -> bool:
        return self._stream is not None and self._stream.closed

    async def execute_get(
        self, descriptor: RequestDescriptor, *, cancel: asyncio.Event | None = None
    ) -> str:
        """GET ``descriptor.url`` signed with the descriptor's parameters."""
        params = descriptor.parameter_map()
        url = descriptor.url if "?" in descriptor.url else _with_query(descriptor.url, params)
        response = await self.send(
            "GET",
            url,
            sign_url=descriptor.base_url,
            signed=params,
            operation="execute_get",
            cancel=cancel,
        )
        return response.text

    async def execute_json(
        self,
        method: str,
        url: str,
        params: Params,
        body: Any,
        *,
        cancel: asyncio.Event | None = None,
    ) -> str:
        """
        Send ``body`` as JSON with POST or PUT; DELETE sends no body.

        ``params`` travel in the query string and are part of the signature.
        """
        method = method.upper()
        if method not in JSON_METHODS:
            raise ValueError(f"Unsupported JSON method '{method}'.")

        signed = clean_parameters(params)
        data: bytes | None = None
        headers: dict[str, str] = {}
        if method != "DELETE":
            data = serialize_json(body).encode("utf-8")
            headers["Content-Type"] = JSON_CONTENT_TYPE

        response = await self.send(
            method,
            _with_query(url, signed),
            sign_url=url,
            signed=signed,
            data=data,
            headers=headers,
            operation="execute_json",
            cancel=cancel,
        )
        return response.text

    async def execute_form_encoded(
        self,
        method: str,
        url: str,
        params: Params,
        *,
        cancel: asyncio.Event | None = None,
    ) -> str:
        """Send ``params`` as a form body; DELETE moves them into the query string."""
        method = method.upper()
        signed = clean_parameters(params)

        if method == "DELETE":
            target, data, headers = _with_query(url, signed), None, {}
        else:
            target = url
            data = encode_form(signed).encode("utf-8")
            headers = {"Content-Type": FORM_CONTENT_TYPE}

        response = await self.send(
            method,
            target,
            sign_url=url,
            signed=signed,
            data=data,
            headers=headers,
            operation="execute_form_encoded",
            cancel=cancel,
        )
        return response.text

    async def execute_multipart(
        self,
        url: str,
        params: Params,
        data: bytes | None = None,
        field_name: str | None = None,
        file_name: str | None = None,
        content_type: str | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> str:
        """
        POST a multipart form of text fields plus an optional binary part.

        Multipart fields never take part in the OAuth signature base, so the
        request is signed with an empty parameter set.
        """
        writer = aiohttp.MultipartWriter("form-data")
        for name, value in clean_parameters(params).items():
            part = writer.append(value)
            part.set_content_disposition("form-data", name=name)

        if data is not None:
            if not field_name:
                raise ValueError("field_name is required when sending binary data.")
            part = writer.append(
                data, {"Content-Type": content_type or "application/octet-stream"}
            )
            part.set_content_disposition(
                "form-data", name=field_name, filename=file_name or field_name
            )

        response = await self.send(
            "POST",
            url,
            signed={},
            data=writer,
            operation="execute_multipart",
            cancel=cancel,
        )
        return response.text

    async def upload_media(
        self,
        url: str,
        params: Params,
        data: bytes,
        field_name: str,
        file_name: str,
        content_type: str | None,
        media_category: str | None = None,
        shared: bool = False,
        *,
        cancel: asyncio.Event | None = None,
    ) -> str:
        """Run the INIT/APPEND/FINALIZE upload and return the FINALIZE response."""
        uploader = ChunkedMediaUploader(self)
        return await uploader.upload(
            url,
            params,
            data,
            field_name,
            file_name,
            content_type,
            media_category=media_category,
            shared=shared,
            cancel=cancel,
        )

    async def send(
        self,
        method: str,
        url: str,
        *,
        signed: Mapping[str, str],
        sign_url: str | None = None,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
        operation: str = "send",
        cancel: asyncio.Event | None = None,
    ) -> ApiResponse:
        """
        Sign and send one request and return its body with metadata.

        ``signed`` must be exactly the parameters carried by the request, and
        ``sign_url`` the URL without them (defaults to ``url``).

        Raises:
            ConfigurationError: when no authorizer is bound.
            ConnectivityError: when the transport fails.
            ApiResponseError: when the API reports an error.
            CancellationError: when ``cancel`` fires.
        """
        authorizer = self._require_authorizer()
        request_headers = self._build_headers(authorizer, method, sign_url or url, signed)
        request_headers.update(headers or {})

        self._write_log("%s %s [%s]", method, url, operation)
        result = await run_cancellable(
            self._perform(method, url, data=data, headers=request_headers), cancel
        )
        self.last_response = result.metadata
        self._write_log("%s %s -> HTTP %s", method, url, result.metadata.status)
        return result

    async def start_stream(
        self, descriptor: RequestDescriptor, *, cancel: asyncio.Event | None = None
    ) -> str:
        """
        Open a stream and feed every frame to :attr:`stream_callback`.

        Returns once the stream ends, is closed with :meth:`close_stream`, or
        delivers the sentinel byte. Frames are dropped when no callback is set.

        A :meth:`close_stream` issued while still connecting aborts the connect
        and returns the same way.

        Raises:
            ConfigurationError: when no authorizer is bound or a stream is
                already active on this executor.
            CancellationError: when ``cancel`` fires while connecting or streaming.
        """
        authorizer = self._require_authorizer()
        if self._stream is not None:
            raise ConfigurationError("A stream is already active on this executor.")
        params = descriptor.parameter_map()
        url = descriptor.url if "?" in descriptor.url else _with_query(descriptor.url, params)
        headers = self._build_headers(authorizer, "GET", descriptor.base_url, params)

        stream = StreamSession(cancel=cancel)
        self._stream = stream
        self._write_log("GET %s [start_stream]", url)
        self.stream_state = StreamState.CONNECTING
        try:
            async with self._session_factory() as session:

                async def open_stream() -> aiohttp.ClientResponse:
                    return await run_cancellable(
                        self._open_stream(session, url, headers), cancel
                    )

                connected = await stream.connect(open_stream)
                if connected:
                    self.stream_state = StreamState.STREAMING
                    logger.debug("Streaming from %s", url)
                    try:
                        await stream.run(self._dispatch)
                    except aiohttp.ClientError as exc:
                        raise ConnectivityError(f"Stream from {url} failed: {exc}") from exc
                else:
                    logger.debug("Stream to %s closed while connecting", url)
        finally:
            if self._stream is stream:
                self._stream = None
            self.stream_state = StreamState.CLOSED
            logger.debug("Stream from %s closed", url)

        self._write_log("GET %s [start_stream] ended", url)
        return STREAM_PLACEHOLDER

    def close_stream(self) -> None:
        """Ask the active stream to stop; the read loop exits without error."""
        stream = self._stream
        if stream is None:
            logger.debug("close_stream called with no active stream")
            return
        stream.close()

    async def _perform(
        self,
        method: str,
        url: str,
        *,
        data: Any,
        headers: Mapping[str, str],
    ) -> ApiResponse:
        try:
            async with self._session_factory() as session:
                async with session.request(
                    method, url, data=data, headers=headers, timeout=self._request_timeout()
                ) as response:
                    body = await response.text(encoding=response.charset or "utf-8")
                    metadata = self._metadata(response)
        except asyncio.TimeoutError as exc:
            raise RequestTimeout(f"{method} {url} timed out.") from exc
        except aiohttp.ClientError as exc:
            raise ConnectivityError(f"{method} {url} failed: {exc}") from exc

        raise_for_api_error(metadata, body)
        return ApiResponse(text=body, metadata=metadata)

    async def _open_stream(
        self,
        session: aiohttp.ClientSession,
        url: str,
        headers: Mapping[str, str],
    ) -> aiohttp.ClientResponse:
        try:
            response = await session.request(
                "GET", url, headers=headers, timeout=self._stream_timeout()
            )
        except asyncio.TimeoutError as exc:
            raise RequestTimeout(f"Connecting to stream {url} timed out.") from exc
        except aiohttp.ClientError as exc:
            raise ConnectivityError(f"Connecting to stream {url} failed: {exc}") from exc

        metadata = self._metadata(response)
        self.last_response = metadata
        if response.status >= 400:
            try:
                body = await response.text(encoding=response.charset or "utf-8")
            finally:
                response.close()
            raise_for_api_error(metadata, body)
        return response

    async def _dispatch(self, content: str) -> None:
        callback = self.stream_callback
        if callback is None:
            return
        await callback(StreamFrame(content=content, executor=self))

    def _build_headers(
        self,
        authorizer: Authorizer,
        method: str,
        url: str,
        signed: Mapping[str, str],
    ) -> dict[str, str]:
        return {
            "Authorization": authorizer.sign(method, url, dict(signed)),
            "User-Agent": self.user_agent,
            "Accept-Encoding": "gzip" if authorizer.supports_compression else "identity",
        }

    def _require_authorizer(self) -> Authorizer:
        if self.authorizer is None:
            raise ConfigurationError("An authorizer is required to send requests.")
        return self.authorizer

    def _request_timeout(self) -> aiohttp.ClientTimeout:
        settings = self.settings
        return aiohttp.ClientTimeout(
            total=settings.timeout_ms / 1000 if settings.timeout_ms else DEFAULT_TIMEOUT.total,
            sock_connect=DEFAULT_TIMEOUT.sock_connect,
            sock_read=(
                settings.read_write_timeout_ms / 1000
                if settings.read_write_timeout_ms
                else DEFAULT_TIMEOUT.sock_read
            ),
        )

    def _stream_timeout(self) -> aiohttp.ClientTimeout:
        connect = self.settings.read_write_timeout_ms
        return aiohttp.ClientTimeout(
            total=None,
            sock_read=None,
            sock_connect=connect / 1000 if connect else None,
        )

    @staticmethod
    def _metadata(response: aiohttp.ClientResponse) -> ResponseMetadata:
        headers = {
            key: ", ".join(response.headers.getall(key)) for key in response.headers.keys()
        }
        return ResponseMetadata(url=str(response.url), status=response.status, headers=headers)

    def _write_log(self, message: str, *args: Any) -> None:
        if self.log is not None:
            self.log.info(message, *args)
