# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

# Lossless Compression Filters
#
# Implements RunLengthDecode, LZWDecode and FlateDecode per PDF Reference
# Section 3.3.3 - 3.3.4. RunLength and LZW are decode-only; Flate works in
# both directions through zlib.

import logging
import zlib

from ..core import types as pt
from ..core import error as pdf_error
from .filter import FilterBase
from .predictor import apply_predictor, revert_predictor, validate_params

logger = logging.getLogger(__name__)


class _DecodeOnlyFilter(FilterBase):
    """Filters without an encoder: every encode call is UnsupportedOperation."""

    def can_encode(self) -> bool:
        return False


class RunLengthFilter(_DecodeOnlyFilter):
    """RunLengthDecode filter - byte oriented run-length decompression"""

    FILTER_TYPE = pt.FILTER_RUN_LENGTH

    def _begin_decode(self, params) -> None:
        self.literal_remaining = 0   # literal bytes still to copy
        self.replicate_count = 0     # copies of the next byte still owed
        self.eod_reached = False

    def _decode_block(self, data: bytes) -> None:
        if self.eod_reached:
            return

        result = bytearray()
        pos = 0
        length = len(data)
        while pos < length:
            if self.literal_remaining:
                take = min(self.literal_remaining, length - pos)
                result.extend(data[pos:pos + take])
                pos += take
                self.literal_remaining -= take
            elif self.replicate_count:
                result.extend(data[pos:pos + 1] * self.replicate_count)
                pos += 1
                self.replicate_count = 0
            else:
                length_byte = data[pos]
                pos += 1
                if length_byte == pt.RUN_LENGTH_EOD:
                    self.eod_reached = True
                    break
                elif length_byte <= 127:
                    # Length 0-127 = copy (length+1) literal bytes
                    self.literal_remaining = length_byte + 1
                else:
                    # Length 129-255 = replicate next byte (257-length) times
                    self.replicate_count = 257 - length_byte

        if result:
            self.sink.write(bytes(result))

    def _end_decode(self) -> None:
        if self.literal_remaining or self.replicate_count:
            logger.warning("RunLengthDecode: data ended inside a run")


# Initial string table: one entry per byte value, then CLEAR and EOD slots
_LZW_INITIAL_TABLE = (tuple(bytes([i]) for i in range(256))
                      + (b"",) * (pt.LZW_FIRST_CODE - 256))


class LZWFilter(_DecodeOnlyFilter):
    """LZWDecode filter - Lempel-Ziv-Welch decompression with a growing code table"""

    FILTER_TYPE = pt.FILTER_LZW

    def _begin_decode(self, params) -> None:
        self.params = pt.PredictorParams.from_dict(params)
        validate_params(self.params)
        self.early_change = 1 if self.params.early_change else 0

        self.reset_decoder()
        self.bit_buffer = 0
        self.bits_available = 0
        self.eod_reached = False

        # predicted data is reverted on the whole buffer at the end
        self._predicted = bytearray() if self.params.predictor > 1 else None

    def reset_decoder(self) -> None:
        """Reset LZW decoder state to initial conditions"""
        self.table = list(_LZW_INITIAL_TABLE)
        self.code_length = pt.LZW_MIN_CODE_LENGTH
        self.previous = None

    def _decode_block(self, data: bytes) -> None:
        if self.eod_reached:
            return

        result = bytearray()
        for byte in data:
            # 24-bit shift register, fed 8 bits at a time
            self.bit_buffer = ((self.bit_buffer << 8) | byte) & 0xFFFFFF
            self.bits_available += 8

            while self.bits_available >= self.code_length:
                shift = self.bits_available - self.code_length
                code = (self.bit_buffer >> shift) & pt.LZW_MASKS[self.code_length - pt.LZW_MIN_CODE_LENGTH]
                self.bits_available -= self.code_length
                self._process_code(code, result)
                if self.eod_reached:
                    break

            if self.eod_reached:
                break

        if result:
            self._emit(bytes(result))

    def _process_code(self, code: int, result: bytearray) -> None:
        if code == pt.LZW_CLEAR:
            self.reset_decoder()
            return
        if code == pt.LZW_EOD:
            # trailing bits and any later input are ignored
            self.eod_reached = True
            return

        table = self.table
        if code < len(table):
            entry = table[code]
        elif self.previous is not None:
            # code the encoder defined one step ahead of us; a code further
            # out decodes the same way
            entry = self.previous + self.previous[:1]
        else:
            pdf_error.e(pdf_error.VALUEOUTOFRANGE, "decode_block",
                        f"LZW code {code} outside table of {len(table)} entries with no previous code")

        result.extend(entry)

        if self.previous is not None and len(table) < pt.LZW_TABLE_SIZE:
            table.append(self.previous + entry[:1])
            self.update_code_length()

        self.previous = entry

    def update_code_length(self) -> None:
        """Widen codes once the table reaches 511/1023/2047 entries (one later without EarlyChange)"""
        if self.code_length < pt.LZW_MAX_CODE_LENGTH:
            if len(self.table) + self.early_change >= (1 << self.code_length):
                self.code_length += 1

    def _emit(self, data: bytes) -> None:
        if self._predicted is not None:
            self._predicted.extend(data)
        else:
            self.sink.write(data)

    def _end_decode(self) -> None:
        if not self.eod_reached:
            logger.debug("LZWDecode: no EOD code before end of data")
        if self._predicted is not None:
            self.sink.write(revert_predictor(bytes(self._predicted), self.params))
        self._teardown()

    def _teardown(self) -> None:
        self.table = None
        self._predicted = None


class FlateFilter(FilterBase):
    """FlateDecode filter - zlib/deflate (de)compression"""

    FILTER_TYPE = pt.FILTER_FLATE

    def __init__(self, level: int = zlib.Z_DEFAULT_COMPRESSION) -> None:
        super().__init__()
        self.level = level
        self.compressor = None
        self.decompressor = None

    # -- encode ---------------------------------------------------------------

    def _begin_encode(self, params) -> None:
        self.params = pt.PredictorParams.from_dict(params)
        validate_params(self.params)
        try:
            self.compressor = zlib.compressobj(self.level)
        except zlib.error as exc:
            pdf_error.e(pdf_error.FLATE, "begin_encode", str(exc))
        # rows need the whole buffer before the predictor can run
        self._encode_buffer = bytearray() if self.params.predictor > 1 else None

    def _encode_block(self, data: bytes) -> None:
        if self._encode_buffer is not None:
            self._encode_buffer.extend(data)
            return
        self._compress(data, "encode_block")

    def _end_encode(self) -> None:
        if self._encode_buffer is not None:
            self._compress(apply_predictor(bytes(self._encode_buffer), self.params), "end_encode")
            self._encode_buffer = None
        try:
            final_data = self.compressor.flush(zlib.Z_FINISH)
        except zlib.error as exc:
            pdf_error.e(pdf_error.FLATE, "end_encode", str(exc))
        if final_data:
            self.sink.write(final_data)
        self.compressor = None

    def _compress(self, data: bytes, func_name: str) -> None:
        try:
            compressed = self.compressor.compress(data)
        except zlib.error as exc:
            pdf_error.e(pdf_error.FLATE, func_name, str(exc))
        if compressed:
            self.sink.write(compressed)

    # -- decode ---------------------------------------------------------------

    def _begin_decode(self, params) -> None:
        self.params = pt.PredictorParams.from_dict(params)
        validate_params(self.params)
        self.decompressor = zlib.decompressobj()
        self._trailing_logged = False
        # predictor reversal runs on the complete inflated output
        self._predicted = bytearray() if self.params.predictor > 1 else None

    def _decode_block(self, data: bytes) -> None:
        decompressor = self.decompressor
        if decompressor.eof:
            self._log_trailing(data)
            return

        # Pump the engine in bounded chunks until it has no more output
        pending = data
        while True:
            try:
                decompressed = decompressor.decompress(pending, pt.FILTER_INTERNAL_BUFFER_SIZE)
            except zlib.error as exc:
                logger.error("Flate decoding error from zlib: %s", exc)
                pdf_error.e(pdf_error.FLATE, "decode_block", str(exc))
            if decompressed:
                self._emit(decompressed)

            pending = decompressor.unconsumed_tail
            if decompressor.eof:
                self._log_trailing(decompressor.unused_data)
                break
            if not pending and len(decompressed) < pt.FILTER_INTERNAL_BUFFER_SIZE:
                break

    def _end_decode(self) -> None:
        decompressor = self.decompressor
        try:
            remaining_data = decompressor.flush()
        except zlib.error as exc:
            logger.error("Flate decoding error from zlib: %s", exc)
            pdf_error.e(pdf_error.FLATE, "end_decode", str(exc))
        if remaining_data:
            self._emit(remaining_data)
        if not decompressor.eof:
            logger.warning("FlateDecode: compressed stream is truncated")

        if self._predicted is not None:
            self.sink.write(revert_predictor(bytes(self._predicted), self.params))
        self._teardown()

    def _emit(self, data: bytes) -> None:
        if self._predicted is not None:
            self._predicted.extend(data)
        else:
            self.sink.write(data)

    def _log_trailing(self, data: bytes) -> None:
        if data and not self._trailing_logged:
            logger.debug("FlateDecode: ignoring %d bytes after end of compressed stream", len(data))
            self._trailing_logged = True

    def _teardown(self) -> None:
        self.compressor = None
        self.decompressor = None
        self._predicted = None
        self._encode_buffer = None
