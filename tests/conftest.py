# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from pdfforge.core import types as pt


SAMPLE_TEXT = (
    b"Man is distinguished, not only by his reason, but by this singular passion from "
    b"other animals, which is a lust of the mind, that by a perseverance of delight in "
    b"the continued and indefatigable generation of knowledge, exceeds the short "
    b"vehemence of any carnal pleasure."
)

SAMPLE_BINARY = bytes([
    0x01, 0x64, 0x65, 0xFE, 0x6B, 0x80, 0x45, 0x32, 0x88, 0x12, 0x71, 0xEA, 0x01,
    0x01, 0x64, 0x65, 0xFE, 0x6B, 0x80, 0x45, 0x32, 0x88, 0x12, 0x71, 0xEA, 0x03,
    0x01, 0x64, 0x65, 0xFE, 0x6B, 0x80, 0x45, 0x32, 0x88, 0x12, 0x71, 0xEA, 0x02,
    0x01, 0x64, 0x65, 0xFE, 0x6B, 0x80, 0x45, 0x32, 0x88, 0x12, 0x71, 0xEA, 0x00,
    0x01, 0x64, 0x65, 0xFE, 0x6B, 0x80, 0x45, 0x32, 0x88, 0x12, 0x71, 0xEA, 0x00,
    0x00, 0x00, 0x00, 0x00, 0x6B, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00,
])


def run_decode(filter_impl, data, params=None, chunk_size=None):
    """Drive one decode session, optionally feeding ``chunk_size`` bytes at a time."""
    sink = pt.MemorySink()
    filter_impl.begin_decode(sink, params)
    if chunk_size is None:
        filter_impl.decode_block(data)
    else:
        for pos in range(0, len(data), chunk_size):
            filter_impl.decode_block(data[pos:pos + chunk_size])
    filter_impl.end_decode()
    return sink.getvalue()


def run_encode(filter_impl, data, params=None, chunk_size=None):
    sink = pt.MemorySink()
    filter_impl.begin_encode(sink, params)
    if chunk_size is None:
        filter_impl.encode_block(data)
    else:
        for pos in range(0, len(data), chunk_size):
            filter_impl.encode_block(data[pos:pos + chunk_size])
    filter_impl.end_encode()
    return sink.getvalue()


def pack_codes(codes):
    """Pack (code, width) pairs MSB-first, zero padding the final byte."""
    bit_buffer = 0
    bits = 0
    for code, width in codes:
        bit_buffer = (bit_buffer << width) | code
        bits += width
    pad = -bits % 8
    bit_buffer <<= pad
    bits += pad
    return bit_buffer.to_bytes(bits // 8, "big")


class FailingSink:
    """Sink whose underlying device refuses writes."""

    def __init__(self, fail_after=0):
        self.fail_after = fail_after
        self.writes = 0

    def write(self, data):
        if self.writes >= self.fail_after:
            raise OSError("device full")
        self.writes += 1


@pytest.fixture
def decode():
    return run_decode


@pytest.fixture
def encode():
    return run_encode


@pytest.fixture
def sample_buffers():
    return [b"", b"\x00", b"A", b"\x00\x00\x00\x00", SAMPLE_TEXT, SAMPLE_BINARY, bytes(range(256))]


@pytest.fixture
def pack():
    return pack_codes


@pytest.fixture
def failing_sink():
    return FailingSink


@pytest.fixture
def sample_text():
    return SAMPLE_TEXT
