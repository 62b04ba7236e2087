# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
PDFForge Types Constants Module

This module contains the constants shared by the stream filter framework:
filter type tags and names, lexical character classes, codec tables and the
tunables that bound internal buffers. Everything here is immutable and safe to
share between concurrently running filter sessions.
"""

# filter types (order matches the PDF filter name table)
FILTER_ASCII_HEX = 0
FILTER_ASCII_85 = 1
FILTER_LZW = 2
FILTER_FLATE = 3
FILTER_RUN_LENGTH = 4
FILTER_CCITT_FAX = 5
FILTER_JBIG2 = 6
FILTER_DCT = 7
FILTER_JPX = 8
FILTER_CRYPT = 9
FILTER_UNKNOWN = -1

FILTER_NAMES = (
    "ASCIIHexDecode",
    "ASCII85Decode",
    "LZWDecode",
    "FlateDecode",
    "RunLengthDecode",
    "CCITTFaxDecode",
    "JBIG2Decode",
    "DCTDecode",
    "JPXDecode",
    "Crypt",
)

# Abbreviations allowed in inline image dictionaries
FILTER_ABBREVIATIONS = {
    "AHx": FILTER_ASCII_HEX,
    "A85": FILTER_ASCII_85,
    "LZW": FILTER_LZW,
    "Fl": FILTER_FLATE,
    "RL": FILTER_RUN_LENGTH,
    "CCF": FILTER_CCITT_FAX,
    "DCT": FILTER_DCT,
}

# PDF whitespace skipped by the ASCII decoders
WHITESPACE = frozenset(b" \t\r\n\f\x00\x08")
ASCII85_WHITESPACE = WHITESPACE | {0x7F}

# Flate staging buffer, reused across blocks within one session
FILTER_INTERNAL_BUFFER_SIZE = 16384

# LZW
LZW_CLEAR = 256                             # clear table
LZW_EOD = 257                               # end of data
LZW_FIRST_CODE = 258                        # first dynamically assigned code
LZW_TABLE_SIZE = 4096                       # table never grows past this
LZW_MIN_CODE_LENGTH = 9
LZW_MAX_CODE_LENGTH = 12
LZW_MASKS = (0x01FF, 0x03FF, 0x07FF, 0x0FFF)

# ASCII85
POWERS_85 = (85 * 85 * 85 * 85, 85 * 85 * 85, 85 * 85, 85, 1)
ASCII85_LINE_LENGTH = 0                     # 0 = never insert line breaks
ASCII85_EOD = b"~>"

# RunLength
RUN_LENGTH_EOD = 128

# Predictor parameter defaults
DEFAULT_PREDICTOR = 1
DEFAULT_COLORS = 1
DEFAULT_BITS_PER_COMPONENT = 8
DEFAULT_COLUMNS = 1
DEFAULT_EARLY_CHANGE = 1

PREDICTOR_NONE = 1
PREDICTOR_TIFF = 2
PREDICTOR_PNG_NONE = 10
PREDICTOR_PNG_OPTIMUM = 15

# PNG per-row filter tags
PNG_ROW_NONE = 0
PNG_ROW_SUB = 1
PNG_ROW_UP = 2
PNG_ROW_AVERAGE = 3
PNG_ROW_PAETH = 4
