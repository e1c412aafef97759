"""
Translation of X API error responses into domain exceptions.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from pydantic import ValidationError

from x_transport.exceptions import ApiResponseError, RateLimitExceeded
from x_transport.models import ApiErrorDetail, ResponseMetadata
from x_transport.rate_limit import RESET_HEADER

TOO_MANY_REQUESTS = 429


def raise_for_api_error(metadata: ResponseMetadata, body: str) -> None:
    """
    Raise when the response carries an API error, otherwise return quietly.

    A response is an error when its status is 400 or above, or when its JSON
    body is an error payload: an ``errors`` list (or a problem document with
    ``title``/``detail``) that comes without a ``data`` member. v2 endpoints
    return partial errors next to ``data``; those are left to the caller.

    Raises:
        RateLimitExceeded: on HTTP 429.
        ApiResponseError: for every other error response.
    """
    payload = _parse_json(body)
    errors = _extract_errors(payload)
    has_data = isinstance(payload, Mapping) and "data" in payload

    if metadata.status < 400 and (not errors or has_data):
        return

    described = next((detail.describe() for detail in errors if detail.describe()), None)
    message = f"X API request to {metadata.url} failed with HTTP {metadata.status}"
    if described:
        message = f"{message}: {described}"
    code = next((detail.code for detail in errors if detail.code is not None), None)

    if metadata.status == TOO_MANY_REQUESTS:
        raise RateLimitExceeded(
            message,
            reset_at=_extract_reset_at(metadata),
            status=metadata.status,
            code=code,
            errors=errors,
            metadata=metadata,
        )
    raise ApiResponseError(
        message,
        status=metadata.status,
        code=code,
        errors=errors,
        metadata=metadata,
    )


def _parse_json(body: str) -> Any:
    if not body or not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


def _extract_errors(payload: Any) -> list[ApiErrorDetail]:
    if not isinstance(payload, Mapping):
        return []

    raw_errors = payload.get("errors")
    if isinstance(raw_errors, list):
        candidates = [item for item in raw_errors if isinstance(item, Mapping)]
    elif "title" in payload and ("detail" in payload or "type" in payload):
        candidates = [payload]
    elif isinstance(payload.get("error"), str):
        candidates = [{"message": payload["error"]}]
    else:
        return []

    details: list[ApiErrorDetail] = []
    for candidate in candidates:
        try:
            details.append(ApiErrorDetail.model_validate(candidate))
        except ValidationError:
            details.append(ApiErrorDetail(message=json.dumps(candidate, default=str)))
    return details


def _extract_reset_at(metadata: ResponseMetadata) -> int | None:
    reset_value = metadata.header(RESET_HEADER)
    if reset_value is None:
        return None

    try:
        return int(reset_value)
    except (TypeError, ValueError):
        return None
