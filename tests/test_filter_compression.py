# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

import io
import logging
import random
import zlib

import pytest

from pdfforge.core import error as pdf_error
from pdfforge.core import types as pt
from pdfforge.filters.filter_compression import FlateFilter, LZWFilter, RunLengthFilter


def _tiff_strips(image, compression):
    """Save ``image`` as TIFF and return the raw bytes of each strip."""
    Image = pytest.importorskip("PIL.Image")
    buf = io.BytesIO()
    image.save(buf, format="TIFF", compression=compression)
    data = buf.getvalue()
    with Image.open(io.BytesIO(data)) as reopened:
        offsets = reopened.tag_v2[273]
        counts = reopened.tag_v2[279]
    if isinstance(offsets, int):
        offsets, counts = (offsets,), (counts,)
    return [data[offset:offset + count] for offset, count in zip(offsets, counts)]


def _test_image_payload(width, height):
    rng = random.Random(7)
    half = width * height // 2
    noisy = bytes(rng.randrange(256) for _ in range(half))
    smooth = bytes((i // 7) & 0xFF for i in range(width * height - half))
    return noisy + smooth


# RunLengthDecode

RLE_EXAMPLE = bytes([2, 0x41, 0x42, 0x43, 0xFE, 0x58, 128])


def test_rle_decode_literal_and_run():
    assert RunLengthFilter().decode(RLE_EXAMPLE) == b"ABCXXX"


def test_rle_decode_chunked(decode):
    assert decode(RunLengthFilter(), RLE_EXAMPLE, chunk_size=1) == b"ABCXXX"


def test_rle_decode_ignores_data_after_eod():
    assert RunLengthFilter().decode(RLE_EXAMPLE + b"\x00Z\x05") == b"ABCXXX"


def test_rle_decode_packbits_sample():
    data = bytes.fromhex("FEAA02 80002A FDAA 03 80002A22 F7AA".replace(" ", ""))
    expected = (b"\xaa" * 3 + b"\x80\x00\x2a" + b"\xaa" * 4
                + b"\x80\x00\x2a\x22" + b"\xaa" * 10)
    assert RunLengthFilter().decode(data) == expected


def test_rle_decode_truncated_run_warns(caplog):
    with caplog.at_level(logging.WARNING):
        assert RunLengthFilter().decode(bytes([5, 0x41])) == b"A"
    assert "inside a run" in caplog.text


def test_rle_decode_libtiff_packbits():
    Image = pytest.importorskip("PIL.Image")
    payload = _test_image_payload(48, 32)
    image = Image.frombytes("L", (48, 32), payload)
    decoded = b"".join(RunLengthFilter().decode(strip) for strip in _tiff_strips(image, "packbits"))
    assert decoded == payload


def test_rle_encode_unsupported():
    rle = RunLengthFilter()
    assert not rle.can_encode()
    assert rle.can_decode()
    with pytest.raises(pdf_error.UnsupportedOperation):
        rle.begin_encode(pt.MemorySink())
    with pytest.raises(pdf_error.UnsupportedOperation):
        rle.encode_block(b"abc")
    with pytest.raises(pdf_error.UnsupportedOperation):
        rle.end_encode()


# LZWDecode

# PDF Reference Example 3.2: codes 256 45 258 258 65 259 66 257
LZW_EXAMPLE = bytes([0x80, 0x0B, 0x60, 0x50, 0x22, 0x0C, 0x0C, 0x85, 0x01])


def test_lzw_decode_reference_example():
    assert LZWFilter().decode(LZW_EXAMPLE) == b"-----A---B"


def test_lzw_decode_chunked(decode):
    assert decode(LZWFilter(), LZW_EXAMPLE, chunk_size=1) == b"-----A---B"
    assert decode(LZWFilter(), LZW_EXAMPLE, chunk_size=4) == b"-----A---B"


def test_lzw_decode_ignores_data_after_eod():
    assert LZWFilter().decode(LZW_EXAMPLE + b"\xff\xff\x00") == b"-----A---B"


def test_lzw_code_width_grows_and_clear_resets(pack):
    codes = [(pt.LZW_CLEAR, 9)]
    codes += [(i, 9) for i in range(254)]
    # table now holds 511 entries; EarlyChange widens codes to 10 bits
    codes += [(65, 10), (pt.LZW_CLEAR, 10), (66, 9), (pt.LZW_EOD, 9)]
    assert LZWFilter().decode(pack(codes)) == bytes(range(254)) + b"AB"


def test_lzw_without_early_change(pack):
    codes = [(pt.LZW_CLEAR, 9)]
    codes += [(i, 9) for i in range(255)]
    codes += [(65, 10), (pt.LZW_EOD, 10)]
    decoded = LZWFilter().decode(pack(codes), {"EarlyChange": 0})
    assert decoded == bytes(range(255)) + b"A"


@pytest.mark.parametrize("codes", [
    [(pt.LZW_CLEAR, 9), (300, 9)],
    [(pt.LZW_CLEAR, 9), (258, 9)],
    [(400, 9)],
])
def test_lzw_rejects_undefined_first_code(pack, codes):
    lzw = LZWFilter()
    with pytest.raises(pdf_error.ValueOutOfRange):
        lzw.decode(pack(codes))
    assert lzw.failed
    assert lzw.table is None


def test_lzw_code_past_table_repeats_previous(pack):
    # 400 is beyond the next free code; it decodes as previous + its first byte
    assert LZWFilter().decode(pack([(65, 9), (400, 9), (pt.LZW_EOD, 9)])) == b"AAA"
    codes = [(pt.LZW_CLEAR, 9), (66, 9), (67, 9), (511, 9), (pt.LZW_EOD, 9)]
    assert LZWFilter().decode(pack(codes)) == b"BCCC"


def _lzw_encode(data, clear_when_full):
    """Reference LZW encoder with EarlyChange 1, as (code, width) pairs."""
    codes = [(pt.LZW_CLEAR, 9)]
    table = {bytes([i]): i for i in range(256)}
    next_code = pt.LZW_FIRST_CODE
    width = 9
    current = b""
    for byte in data:
        candidate = current + bytes([byte])
        if candidate in table:
            current = candidate
            continue
        codes.append((table[current], width))
        if next_code < pt.LZW_TABLE_SIZE:
            table[candidate] = next_code
            next_code += 1
            if next_code >= (1 << width) and width < pt.LZW_MAX_CODE_LENGTH:
                width += 1
        elif clear_when_full:
            codes.append((pt.LZW_CLEAR, width))
            table = {bytes([i]): i for i in range(256)}
            next_code = pt.LZW_FIRST_CODE
            width = 9
        current = bytes([byte])

    if current:
        codes.append((table[current], width))
        # the decoder still adds an entry for this last code
        if next_code < pt.LZW_TABLE_SIZE:
            next_code += 1
            if next_code >= (1 << width) and width < pt.LZW_MAX_CODE_LENGTH:
                width += 1
    codes.append((pt.LZW_EOD, width))
    return codes


def _random_bytes(seed, count, alphabet=bytes(range(256))):
    rng = random.Random(seed)
    return bytes(rng.choice(alphabet) for _ in range(count))


@pytest.mark.parametrize("clear_when_full, data", [
    (False, _random_bytes(21, 60000, b"abcd")),
    (True, _random_bytes(22, 30000)),
])
def test_lzw_full_table_and_all_code_widths(pack, decode, clear_when_full, data):
    codes = _lzw_encode(data, clear_when_full)
    assert {width for _, width in codes} == {9, 10, 11, 12}
    clears = sum(1 for code, _ in codes if code == pt.LZW_CLEAR)
    assert clears > 1 if clear_when_full else clears == 1

    encoded = pack(codes)
    assert decode(LZWFilter(), encoded) == data
    assert decode(LZWFilter(), encoded, chunk_size=1) == data


def test_lzw_with_png_predictor(pack):
    # two rows of two bytes, Up predicted: [2, 1, 2] [2, 1, 1]
    codes = [(pt.LZW_CLEAR, 9), (2, 9), (1, 9), (2, 9), (2, 9), (1, 9), (1, 9), (pt.LZW_EOD, 9)]
    decoded = LZWFilter().decode(pack(codes), {"Predictor": 12, "Columns": 2})
    assert decoded == b"\x01\x02\x02\x03"


def test_lzw_decode_libtiff_strips():
    Image = pytest.importorskip("PIL.Image")
    payload = _test_image_payload(64, 96)
    image = Image.frombytes("L", (64, 96), payload)
    decoded = b"".join(LZWFilter().decode(strip) for strip in _tiff_strips(image, "tiff_lzw"))
    assert decoded == payload


def test_lzw_encode_unsupported():
    with pytest.raises(pdf_error.UnsupportedOperation):
        LZWFilter().encode(b"abc")


# FlateDecode

def test_flate_decode_zlib_output(sample_buffers):
    for data in sample_buffers:
        assert FlateFilter().decode(zlib.compress(data)) == data


def test_flate_round_trip(sample_buffers, encode, decode):
    for data in sample_buffers:
        encoded = encode(FlateFilter(), data, chunk_size=7)
        assert zlib.decompress(encoded) == data
        assert decode(FlateFilter(), encoded, chunk_size=3) == data


def test_flate_levels(sample_text):
    for level in (0, 1, 9):
        encoded = FlateFilter(level=level).encode(sample_text * 4)
        assert FlateFilter().decode(encoded) == sample_text * 4


def test_flate_large_output_is_pumped():
    data = bytes(1 << 20)
    compressed = zlib.compress(data)
    assert len(compressed) < pt.FILTER_INTERNAL_BUFFER_SIZE
    assert FlateFilter().decode(compressed) == data


def test_flate_ignores_trailing_garbage(sample_text):
    assert FlateFilter().decode(zlib.compress(sample_text) + b"\r\nendstream") == sample_text


def test_flate_truncated_stream_warns(sample_text, caplog):
    compressed = zlib.compress(sample_text * 20)
    with caplog.at_level(logging.WARNING):
        decoded = FlateFilter().decode(compressed[:len(compressed) // 2])
    assert (sample_text * 20).startswith(decoded)
    assert "truncated" in caplog.text


def test_flate_corrupt_data():
    flate = FlateFilter()
    with pytest.raises(pdf_error.FlateDecodingError):
        flate.decode(b"\x00\x01\x02\x03 this is not deflate")
    assert flate.failed
    assert flate.decompressor is None
    assert not flate.decoding


def test_flate_sink_failure_tears_down(failing_sink, sample_text):
    flate = FlateFilter()
    flate.begin_decode(failing_sink())
    with pytest.raises(OSError):
        flate.decode_block(zlib.compress(sample_text))
    assert flate.failed
    assert flate.decompressor is None
    with pytest.raises(pdf_error.InternalLogicError):
        flate.decode_block(b"")


def test_flate_png_up_predictor():
    predicted = bytes([2, 1, 2, 3, 4, 2, 4, 4, 4, 4])
    decoded = FlateFilter().decode(zlib.compress(predicted), {"Predictor": 12, "Columns": 4})
    assert decoded == bytes(range(1, 9))


def test_flate_predictor_one_is_passthrough(sample_text):
    assert FlateFilter().decode(zlib.compress(sample_text), {"Predictor": 1}) == sample_text


def test_flate_encode_with_predictor(sample_binary_rows):
    params = {"Predictor": 15, "Colors": 3, "Columns": 5}
    encoded = FlateFilter().encode(sample_binary_rows, params)
    inflated = zlib.decompress(encoded)
    assert len(inflated) == (len(sample_binary_rows) // 15) * 16
    assert FlateFilter().decode(encoded, params) == sample_binary_rows


def test_flate_invalid_predictor():
    with pytest.raises(pdf_error.InvalidPredictor):
        FlateFilter().begin_decode(pt.MemorySink(), {"Predictor": 3})


@pytest.fixture
def sample_binary_rows():
    rng = random.Random(11)
    return bytes(rng.randrange(256) for _ in range(15 * 9))
