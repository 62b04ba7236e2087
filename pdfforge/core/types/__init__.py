# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
PDFForge Types Package - Public API

This package provides the shared types of the filter framework through one
namespace, to support the import pattern ``from ..core import types as pt``.

**Internal Module Organization:**
- constants.py: filter tags and names, codec tables, buffer tunables
- params.py: /DecodeParms lookup and PredictorParams
- sink.py: output sink abstraction and concrete sinks

**Usage:**
```python
from ..core import types as pt

params = pt.PredictorParams.from_dict({"Predictor": 12, "Columns": 4})
sink = pt.MemorySink()
```
"""

# =============================================================================
# CONSTANTS
# =============================================================================
from .constants import (
    # Filter types
    FILTER_ASCII_HEX, FILTER_ASCII_85, FILTER_LZW, FILTER_FLATE,
    FILTER_RUN_LENGTH, FILTER_CCITT_FAX, FILTER_JBIG2, FILTER_DCT,
    FILTER_JPX, FILTER_CRYPT, FILTER_UNKNOWN,
    FILTER_NAMES, FILTER_ABBREVIATIONS,

    # Lexical
    WHITESPACE, ASCII85_WHITESPACE,

    # Codec tables and tunables
    FILTER_INTERNAL_BUFFER_SIZE,
    LZW_CLEAR, LZW_EOD, LZW_FIRST_CODE, LZW_TABLE_SIZE,
    LZW_MIN_CODE_LENGTH, LZW_MAX_CODE_LENGTH, LZW_MASKS,
    POWERS_85, ASCII85_LINE_LENGTH, ASCII85_EOD,
    RUN_LENGTH_EOD,

    # Predictors
    DEFAULT_PREDICTOR, DEFAULT_COLORS, DEFAULT_BITS_PER_COMPONENT,
    DEFAULT_COLUMNS, DEFAULT_EARLY_CHANGE,
    PREDICTOR_NONE, PREDICTOR_TIFF,
    PREDICTOR_PNG_NONE, PREDICTOR_PNG_OPTIMUM,
    PNG_ROW_NONE, PNG_ROW_SUB, PNG_ROW_UP, PNG_ROW_AVERAGE, PNG_ROW_PAETH,
)

# =============================================================================
# PARAMETERS
# =============================================================================
from .params import PredictorParams, extract_param, extract_int

# =============================================================================
# SINKS
# =============================================================================
from .sink import OutputSink, MemorySink, FileSink, FilterSink
