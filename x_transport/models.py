"""
Pydantic models for requests and responses handled by x_transport.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from x_transport.rate_limit import RateLimitStatus
from x_transport.utils.url import percent_encode

if TYPE_CHECKING:
    from x_transport.clients.executor import XExecutor


def _to_mapping(payload: Any) -> Mapping[str, Any]:
    if isinstance(payload, Mapping):
        return payload
    if isinstance(payload, (str, bytes)):
        return _to_mapping(json.loads(payload))
    if hasattr(payload, "__dict__"):
        return _to_mapping(vars(payload))
    raise TypeError(f"Cannot convert payload of type {type(payload)!r} to mapping.")


class RequestParameter(BaseModel):
    """A single name/value pair of a request. ``None`` values are never sent."""

    name: str
    value: str | None = None

    model_config = ConfigDict(frozen=True)


class RequestDescriptor(BaseModel):
    """Immutable bundle of target URL and request parameters."""

    url: str
    endpoint: str = ""
    parameters: tuple[RequestParameter, ...] = ()

    model_config = ConfigDict(frozen=True)

    @field_validator("parameters", mode="before")
    @classmethod
    def coerce_parameters(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            value = value.items()
        return tuple(
            RequestParameter(name=item[0], value=item[1]) if isinstance(item, (tuple, list)) else item
            for item in value
        )

    @model_validator(mode="after")
    def check_unique_names(self) -> "RequestDescriptor":
        names = [parameter.name for parameter in self.parameters]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate request parameters: {', '.join(duplicates)}")
        return self

    @classmethod
    def build(
        cls,
        endpoint: str,
        path: str,
        parameters: Mapping[str, str | None] | Iterable[tuple[str, str | None]] = (),
    ) -> "RequestDescriptor":
        """Compose ``endpoint + path`` with the non-null parameters as the query string."""

        items = list(parameters.items() if isinstance(parameters, Mapping) else parameters)
        query = "&".join(
            f"{name}={percent_encode(value)}" for name, value in items if value is not None
        )
        url = endpoint.rstrip("/") + "/" + path.lstrip("/")
        if query:
            url = f"{url}?{query}"
        return cls(url=url, endpoint=endpoint, parameters=tuple(items))

    @property
    def base_url(self) -> str:
        return self.url.split("?", 1)[0]

    def parameter_map(self) -> dict[str, str]:
        return {p.name: p.value for p in self.parameters if p.value is not None}


class ResponseMetadata(BaseModel):
    """URL, status and headers of a completed call."""

    url: str
    status: int
    headers: dict[str, str] = {}

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    @property
    def rate_limit(self) -> RateLimitStatus | None:
        return RateLimitStatus.from_headers(self.headers)


class ApiResponse(BaseModel):
    """Body text plus metadata of a completed call."""

    text: str
    metadata: ResponseMetadata


class ApiErrorDetail(BaseModel):
    """One entry of an X error payload (v1.1 ``message``/``code`` or v2 problem fields)."""

    message: str | None = None
    code: int | None = None
    title: str | None = None
    detail: str | None = None
    type: str | None = None

    model_config = ConfigDict(extra="allow")

    def describe(self) -> str | None:
        return self.detail or self.message or self.title


class MediaProcessingInfo(BaseModel):
    state: str
    check_after_secs: int | None = None
    progress_percent: int | None = None

    model_config = ConfigDict(extra="allow")


class MediaUploadResult(BaseModel):
    """Normalized response from the media upload endpoints."""

    media_id: str
    media_id_string: str | None = None
    media_key: str | None = None
    size: int | None = None
    expires_after_secs: int | None = None
    processing_info: MediaProcessingInfo | None = None

    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_api(cls, payload: Any) -> "MediaUploadResult":
        return cls.model_validate(_to_mapping(payload))

    @field_validator("media_id", mode="before")
    @classmethod
    def coerce_media_id(cls, value: Any) -> str:
        if isinstance(value, bool):
            raise ValueError("media_id must be an integer.")
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and value.isdigit():
            return value
        raise ValueError("media_id must be an integer.")


@dataclass(frozen=True, slots=True)
class StreamFrame:
    """One newline-delimited message read from a stream."""

    content: str
    executor: "XExecutor"

    @property
    def is_keep_alive(self) -> bool:
        return not self.content.strip()

    def json(self) -> Any:
        """Decode the frame as JSON. Keep-alive frames decode to ``None``."""
        if self.is_keep_alive:
            return None
        return json.loads(self.content)

    def close_stream(self) -> None:
        """Ask the owning executor to end the stream after this frame."""
        self.executor.close_stream()
