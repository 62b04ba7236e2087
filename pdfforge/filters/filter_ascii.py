# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

# ASCII Encoding/Decoding Filters
#
# Implements the ASCIIHexDecode and ASCII85Decode filters (PDF Reference
# Section 3.3.1 and 3.3.2) in both directions.

from ..core import types as pt
from ..core import error as pdf_error
from .filter import FilterBase

# byte -> nibble value, -1 for anything that is not a hex digit
_HEX_VALUES = tuple(
    int(chr(c), 16) if chr(c) in "0123456789abcdefABCDEF" else -1
    for c in range(256)
)


class ASCIIHexFilter(FilterBase):
    """ASCII hexadecimal filter - two uppercase hex digits per byte"""

    FILTER_TYPE = pt.FILTER_ASCII_HEX

    def _encode_block(self, data: bytes) -> None:
        if data:
            self.sink.write(data.hex().upper().encode("ascii"))

    def _begin_decode(self, params) -> None:
        self.high_nibble = None   # pending first digit of a pair
        self.eod_reached = False

    def _decode_block(self, data: bytes) -> None:
        if self.eod_reached:
            return

        result = bytearray()
        for char in data:
            if char in pt.WHITESPACE:
                continue

            # '>' marks end of data, anything after it is not ours
            if char == 0x3E:
                self.eod_reached = True
                break

            val = _HEX_VALUES[char]
            if val < 0:
                pdf_error.e(pdf_error.VALUEOUTOFRANGE, "decode_block",
                            f"invalid hex digit 0x{char:02X}")

            if self.high_nibble is None:
                self.high_nibble = val
            else:
                result.append((self.high_nibble << 4) | val)
                self.high_nibble = None

        if result:
            self.sink.write(bytes(result))

    def _end_decode(self) -> None:
        # Odd number of digits: the missing low nibble is 0
        if self.high_nibble is not None:
            self.sink.write(bytes([self.high_nibble << 4]))
            self.high_nibble = None


class ASCII85Filter(FilterBase):
    """ASCII base-85 filter with the 'z' zero-tuple and '~>' terminator conventions"""

    FILTER_TYPE = pt.FILTER_ASCII_85

    def __init__(self, line_length: int = pt.ASCII85_LINE_LENGTH) -> None:
        super().__init__()
        self.line_length = line_length

    # -- encode ---------------------------------------------------------------

    def _begin_encode(self, params) -> None:
        self.tuple = 0
        self.count = 0
        self.column_count = 0   # Track output column for line breaks

    def _encode_block(self, data: bytes) -> None:
        out = bytearray()
        for byte_val in data:
            self.tuple |= byte_val << (24 - 8 * self.count)
            self.count += 1
            if self.count == 4:
                if self.tuple == 0:
                    self._put(out, b"z")
                else:
                    self._put(out, self._encode_tuple(self.tuple, 4))
                self.tuple = 0
                self.count = 0
        if out:
            self.sink.write(bytes(out))

    def _end_encode(self) -> None:
        out = bytearray()
        # partial groups never use the 'z' shortcut
        if self.count > 0:
            self._put(out, self._encode_tuple(self.tuple, self.count))
        out.extend(pt.ASCII85_EOD)
        self.sink.write(bytes(out))

    @staticmethod
    def _encode_tuple(value: int, count: int) -> bytes:
        """Base-85 digits of ``value``, most significant first, ``count + 1`` of them."""
        digits = bytearray(5)
        for i in range(4, -1, -1):
            digits[i] = value % 85 + 33
            value //= 85
        return bytes(digits[:count + 1])

    def _put(self, out: bytearray, chars: bytes) -> None:
        if not self.line_length:
            out.extend(chars)
            return
        for char in chars:
            out.append(char)
            self.column_count += 1
            if self.column_count >= self.line_length:
                out.append(0x0A)
                self.column_count = 0

    # -- decode ---------------------------------------------------------------

    def _begin_decode(self, params) -> None:
        self.tuple = 0
        self.count = 0
        self.pending_tilde = False   # '~' seen, '>' must follow
        self.eod_reached = False

    def _decode_block(self, data: bytes) -> None:
        if self.eod_reached:
            return

        result = bytearray()
        for char in data:
            if self.pending_tilde:
                if char != 0x3E:
                    pdf_error.e(pdf_error.VALUEOUTOFRANGE, "decode_block",
                                "'~' not followed by '>'")
                self.pending_tilde = False
                self.eod_reached = True
                break

            if 0x21 <= char <= 0x75:
                self.tuple += (char - 33) * pt.POWERS_85[self.count]
                self.count += 1
                if self.count == 5:
                    if self.tuple > 0xFFFFFFFF:
                        pdf_error.e(pdf_error.VALUEOUTOFRANGE, "decode_block",
                                    f"5-tuple value {self.tuple} exceeds 2^32-1")
                    result.extend(self.tuple.to_bytes(4, "big"))
                    self.tuple = 0
                    self.count = 0
            elif char == 0x7A:   # 'z'
                if self.count != 0:
                    pdf_error.e(pdf_error.VALUEOUTOFRANGE, "decode_block",
                                "'z' inside a 5-tuple")
                result.extend(b"\x00\x00\x00\x00")
            elif char == 0x7E:   # '~'
                self.pending_tilde = True
            elif char in pt.ASCII85_WHITESPACE:
                continue
            else:
                pdf_error.e(pdf_error.VALUEOUTOFRANGE, "decode_block",
                            f"invalid ASCII85 character 0x{char:02X}")

        if result:
            self.sink.write(bytes(result))

    def _end_decode(self) -> None:
        if self.pending_tilde:
            pdf_error.e(pdf_error.VALUEOUTOFRANGE, "end_decode",
                        "'~' at end of data without '>'")

        # Missing digits count as 'u' (84), n characters give n-1 bytes
        count = self.count
        if count > 1:
            value = self.tuple
            for i in range(count, 5):
                value += 84 * pt.POWERS_85[i]
            if value > 0xFFFFFFFF:
                pdf_error.e(pdf_error.VALUEOUTOFRANGE, "end_decode",
                            f"final partial tuple value {value} exceeds 2^32-1")
            self.sink.write(value.to_bytes(4, "big")[:count - 1])
        self.tuple = 0
        self.count = 0
