"""URL and form encoding helpers.

X signs and parses parameters using RFC 3986 percent-encoding, where only the
unreserved characters ``A-Z a-z 0-9 - . _ ~`` pass through untouched. The
helpers here produce exactly that encoding so the bytes on the wire match what
the authorizer signed.
"""

from __future__ import annotations

from typing import Iterable, Mapping
from urllib.parse import quote

UNRESERVED = "-._~"


def percent_encode(value: str) -> str:
    """Percent-encode ``value`` leaving only RFC 3986 unreserved characters."""

    return quote(value, safe=UNRESERVED)


def clean_parameters(
    params: Mapping[str, str | None] | Iterable[tuple[str, str | None]] | None,
) -> dict[str, str]:
    """Drop ``None`` valued parameters, preserving insertion order."""

    if not params:
        return {}
    items = params.items() if isinstance(params, Mapping) else params
    return {name: value for name, value in items if value is not None}


def encode_form(params: Mapping[str, str]) -> str:
    """Join ``name=value`` pairs with ``&`` using percent-encoded values."""

    return "&".join(f"{name}={percent_encode(value)}" for name, value in params.items())
