"""Segmenting helpers for chunked uploads."""

from __future__ import annotations

from typing import Iterator


def split_chunks(data: bytes, chunk_size: int) -> Iterator[tuple[int, bytes]]:
    """
    Yield ``(segment_index, chunk)`` pairs covering ``data`` in order.

    Every chunk is exactly ``chunk_size`` bytes except possibly the last.
    Empty ``data`` yields nothing.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be a positive integer")

    view = memoryview(data)
    for segment_index, start in enumerate(range(0, len(data), chunk_size)):
        yield segment_index, bytes(view[start : start + chunk_size])
