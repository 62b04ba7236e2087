# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
PNG and TIFF row predictors for FlateDecode and LZWDecode.

A predictor is applied to image rows before compression; decoders revert it
on the complete decompressed buffer. Predictor values (PDF Reference,
Table 3.8):

    1       no prediction
    2       TIFF Predictor 2 (horizontal differencing per component)
    10-15   PNG prediction; every row carries a leading tag 0-4
            (None, Sub, Up, Average, Paeth)

All arithmetic is unsigned and modulo the sample size. Rows that can be
handled as whole-array operations go through numpy; Average and Paeth depend
on the reconstructed left neighbour and are reverted byte by byte.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import numpy as np

from ..core import types as pt
from ..core import error as pdf_error

logger = logging.getLogger(__name__)

_VALID_BITS_PER_COMPONENT = (1, 2, 4, 8, 16)


def validate_params(params: pt.PredictorParams) -> None:
    """Reject predictor settings no row layout can be derived from."""
    predictor = params.predictor
    if predictor == pt.PREDICTOR_NONE:
        return
    if predictor != pt.PREDICTOR_TIFF and not (
            pt.PREDICTOR_PNG_NONE <= predictor <= pt.PREDICTOR_PNG_OPTIMUM):
        pdf_error.e(pdf_error.INVALIDPREDICTOR, "predictor",
                    f"unknown predictor {predictor}")
    if params.colors < 1 or params.columns < 1:
        pdf_error.e(pdf_error.VALUEOUTOFRANGE, "predictor",
                    f"Colors {params.colors} / Columns {params.columns} must be positive")
    if params.bits_per_component not in _VALID_BITS_PER_COMPONENT:
        pdf_error.e(pdf_error.VALUEOUTOFRANGE, "predictor",
                    f"unsupported BitsPerComponent {params.bits_per_component}")


def revert_predictor(data: bytes | bytearray, params: pt.PredictorParams | Mapping | Any | None) -> bytes:
    """Undo the predictor described by ``params`` on a decompressed buffer."""
    params = pt.PredictorParams.from_dict(params)
    validate_params(params)

    if params.predictor == pt.PREDICTOR_NONE:
        return bytes(data)
    if params.predictor == pt.PREDICTOR_TIFF:
        return _revert_tiff(bytes(data), params)
    return _revert_png(bytes(data), params)


def apply_predictor(data: bytes | bytearray, params: pt.PredictorParams | Mapping | Any | None) -> bytes:
    """Apply the predictor described by ``params`` ahead of compression."""
    params = pt.PredictorParams.from_dict(params)
    validate_params(params)

    if params.predictor == pt.PREDICTOR_NONE:
        return bytes(data)
    if params.predictor == pt.PREDICTOR_TIFF:
        return _apply_tiff(bytes(data), params)
    return _apply_png(bytes(data), params)


# -- PNG ----------------------------------------------------------------------

def _paeth_predictor(a: int, b: int, c: int) -> int:
    """PNG Paeth predictor function per PNG specification."""
    p = a + b - c
    pa = abs(p - a)
    pb = abs(p - b)
    pc = abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    elif pb <= pc:
        return b
    else:
        return c


def _shift_right(row: np.ndarray, bpp: int) -> np.ndarray:
    """Left neighbours of every byte, zeros for the first pixel."""
    shifted = np.zeros_like(row)
    if len(row) > bpp:
        shifted[bpp:] = row[:-bpp]
    return shifted


def _revert_png(data: bytes, params: pt.PredictorParams) -> bytes:
    row_width = params.row_width
    bpp = params.bytes_per_pixel
    stride = row_width + 1

    buf = np.frombuffer(data, dtype=np.uint8)
    # rows never exceed the data, whatever /Columns claims
    prev = np.zeros(min(row_width, len(buf)), dtype=np.uint8)
    out = bytearray()

    for start in range(0, len(buf), stride):
        tag = int(buf[start])
        filtered = buf[start + 1:start + stride]
        width = len(filtered)
        if width < row_width:
            logger.warning("PNG predictor: partial final row of %d/%d bytes", width, row_width)

        row = _decode_png_row(tag, filtered, prev[:width], bpp)
        out.extend(row.tobytes())
        prev = row

    return bytes(out)


def _decode_png_row(tag: int, filtered: np.ndarray, prev: np.ndarray, bpp: int) -> np.ndarray:
    """Decode a single PNG-predicted row. ``prev`` is the previous output row."""
    width = len(filtered)

    if tag == pt.PNG_ROW_NONE:
        return filtered.copy()

    if tag == pt.PNG_ROW_UP:
        # Up: Recon[i] = Filt[i] + Prior[i]
        return filtered + prev

    if tag == pt.PNG_ROW_SUB:
        # Sub: Recon[i] = Filt[i] + Recon[i - bpp]; a running sum per byte lane
        lanes = -(-width // bpp)
        padded = np.zeros(lanes * bpp, dtype=np.int64)
        padded[:width] = filtered
        summed = np.cumsum(padded.reshape(lanes, bpp), axis=0) & 0xFF
        return summed.reshape(-1)[:width].astype(np.uint8)

    filt = filtered.tolist()
    prior = prev.tolist()
    row = bytearray(width)

    if tag == pt.PNG_ROW_AVERAGE:
        # Average: Recon[i] = Filt[i] + floor((Recon[i-bpp] + Prior[i]) / 2)
        for i in range(width):
            left = row[i - bpp] if i >= bpp else 0
            row[i] = (filt[i] + ((left + prior[i]) >> 1)) & 0xFF
    elif tag == pt.PNG_ROW_PAETH:
        # Paeth: Recon[i] = Filt[i] + PaethPredictor(a, b, c)
        for i in range(width):
            a = row[i - bpp] if i >= bpp else 0
            b = prior[i]
            c = prior[i - bpp] if i >= bpp else 0
            row[i] = (filt[i] + _paeth_predictor(a, b, c)) & 0xFF
    else:
        pdf_error.e(pdf_error.INVALIDPREDICTOR, "predictor",
                    f"unknown PNG row filter type {tag}")

    return np.frombuffer(bytes(row), dtype=np.uint8)


def _encode_png_row(tag: int, row: np.ndarray, prev: np.ndarray, bpp: int) -> np.ndarray:
    """Filter one raw row. Every predictor input comes from raw bytes."""
    raw = row.astype(np.int32)
    left = _shift_right(raw, bpp)
    up = prev.astype(np.int32)

    if tag == pt.PNG_ROW_NONE:
        predicted = np.zeros_like(raw)
    elif tag == pt.PNG_ROW_SUB:
        predicted = left
    elif tag == pt.PNG_ROW_UP:
        predicted = up
    elif tag == pt.PNG_ROW_AVERAGE:
        predicted = (left + up) >> 1
    else:
        upper_left = _shift_right(up, bpp)
        p = left + up - upper_left
        pa = np.abs(p - left)
        pb = np.abs(p - up)
        pc = np.abs(p - upper_left)
        predicted = np.where((pa <= pb) & (pa <= pc), left, np.where(pb <= pc, up, upper_left))

    return ((raw - predicted) & 0xFF).astype(np.uint8)


def _choose_png_row(row: np.ndarray, prev: np.ndarray, bpp: int) -> tuple[int, np.ndarray]:
    """Pick the row filter with the smallest sum of absolute signed bytes."""
    best_tag, best_row, best_score = 0, None, None
    for tag in (pt.PNG_ROW_NONE, pt.PNG_ROW_SUB, pt.PNG_ROW_UP,
                pt.PNG_ROW_AVERAGE, pt.PNG_ROW_PAETH):
        encoded = _encode_png_row(tag, row, prev, bpp)
        score = int(np.abs(encoded.view(np.int8).astype(np.int32)).sum())
        if best_score is None or score < best_score:
            best_tag, best_row, best_score = tag, encoded, score
    return best_tag, best_row


def _apply_png(data: bytes, params: pt.PredictorParams) -> bytes:
    row_width = params.row_width
    bpp = params.bytes_per_pixel
    buf = np.frombuffer(data, dtype=np.uint8)
    prev = np.zeros(min(row_width, len(buf)), dtype=np.uint8)
    out = bytearray()

    for start in range(0, len(buf), row_width):
        row = buf[start:start + row_width]
        prior = prev[:len(row)]
        if params.predictor == pt.PREDICTOR_PNG_OPTIMUM:
            tag, encoded = _choose_png_row(row, prior, bpp)
        else:
            tag = params.predictor - pt.PREDICTOR_PNG_NONE
            encoded = _encode_png_row(tag, row, prior, bpp)
        out.append(tag)
        out.extend(encoded.tobytes())
        prev = row

    return bytes(out)


# -- TIFF ---------------------------------------------------------------------

def _unpack_samples(row: np.ndarray, bpc: int, count: int) -> np.ndarray:
    if bpc == 8:
        return row[:count].astype(np.int64)
    if bpc == 16:
        return row[:count * 2].view(">u2").astype(np.int64)
    bits = np.unpackbits(row)[:count * bpc].reshape(count, bpc)
    weights = 1 << np.arange(bpc - 1, -1, -1)
    return bits.astype(np.int64) @ weights


def _pack_samples(samples: np.ndarray, bpc: int, row_width: int) -> np.ndarray:
    if bpc == 8:
        packed = samples.astype(np.uint8)
    elif bpc == 16:
        packed = samples.astype(">u2").view(np.uint8)
    else:
        shifts = np.arange(bpc - 1, -1, -1)
        bits = ((samples[:, None] >> shifts) & 1).astype(np.uint8).reshape(-1)
        packed = np.packbits(bits)
    out = np.zeros(row_width, dtype=np.uint8)
    out[:len(packed)] = packed
    return out


def _tiff_rows(data: bytes, params: pt.PredictorParams, reverse: bool) -> bytes:
    row_width = params.row_width
    bpc = params.bits_per_component
    colors = params.colors
    modulus = 1 << bpc
    out = bytearray()

    for start in range(0, len(data), row_width):
        chunk = data[start:start + row_width]
        width = len(chunk)
        if width < row_width:
            logger.warning("TIFF predictor: partial final row of %d/%d bytes", width, row_width)

        # only the pixels the data reaches, whatever /Columns claims
        columns = min(params.columns, -(-width * 8 // (bpc * colors)))
        padded_width = (columns * colors * bpc + 7) // 8
        row = np.zeros(padded_width, dtype=np.uint8)
        row[:width] = np.frombuffer(chunk, dtype=np.uint8)

        samples = _unpack_samples(row, bpc, columns * colors).reshape(columns, colors)
        if reverse:
            samples = np.cumsum(samples, axis=0) % modulus
        else:
            samples = np.diff(samples, axis=0, prepend=0) % modulus
        packed = _pack_samples(samples.reshape(-1), bpc, padded_width)
        out.extend(packed[:width].tobytes())

    return bytes(out)


def _revert_tiff(data: bytes, params: pt.PredictorParams) -> bytes:
    return _tiff_rows(data, params, reverse=True)


def _apply_tiff(data: bytes, params: pt.PredictorParams) -> bytes:
    return _tiff_rows(data, params, reverse=False)
