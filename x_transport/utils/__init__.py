"""Utility helpers for the x_transport package."""

from __future__ import annotations

__all__ = [
    "percent_encode",
    "encode_form",
    "clean_parameters",
    "split_chunks",
]

from .chunks import split_chunks
from .url import clean_parameters, encode_form, percent_encode
