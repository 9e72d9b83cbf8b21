"""Unit tests for region payload decompression."""

from __future__ import annotations

import zlib

import pytest

from starcore.compression import inflate
from starcore.errors import WorldFormatError


def test_inflate_zlib_stream() -> None:
    """zlib-wrapped payloads inflate."""
    assert inflate(zlib.compress(b"tiles" * 100)) == b"tiles" * 100


def test_inflate_raw_deflate_stream() -> None:
    """Bare deflate payloads inflate too."""
    compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    raw = compressor.compress(b"entities" * 50) + compressor.flush()

    assert inflate(raw) == b"entities" * 50


def test_truncated_stream_is_fatal() -> None:
    """A stream cut short is a format error."""
    data = zlib.compress(bytes(range(256)) * 8)

    with pytest.raises(WorldFormatError):
        inflate(data[:len(data) // 2])
