# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Decode parameter dictionaries.

The document layer hands filters a /DecodeParms dictionary that may be missing,
partially populated, keyed by ``str`` or ``bytes`` names (with or without the
leading slash) and hold either plain ints or wrapper objects exposing ``.val``.
Everything in this module reads such dictionaries without caring which.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .constants import (
    DEFAULT_PREDICTOR, DEFAULT_COLORS, DEFAULT_BITS_PER_COMPONENT,
    DEFAULT_COLUMNS, DEFAULT_EARLY_CHANGE,
)


def _key_variants(key: str) -> tuple:
    return (key, key.encode("ascii"), "/" + key, b"/" + key.encode("ascii"))


def extract_param(params: Mapping | Any | None, key: str, default: Any) -> Any:
    """Extract a parameter value from a plain dict or a wrapped dict object."""
    if params is None:
        return default
    if hasattr(params, "val") and not isinstance(params, Mapping):
        params = params.val
    if not isinstance(params, Mapping):
        return default

    for variant in _key_variants(key):
        if variant in params:
            obj = params[variant]
            if hasattr(obj, "val"):
                return obj.val
            return obj
    return default


def extract_int(params: Mapping | Any | None, key: str, default: int) -> int:
    value = extract_param(params, key, default)
    if value is None:
        return default
    return int(value)


@dataclass(frozen=True)
class PredictorParams:
    """Predictor and LZW settings read from a /DecodeParms dictionary."""

    predictor: int = DEFAULT_PREDICTOR
    colors: int = DEFAULT_COLORS
    bits_per_component: int = DEFAULT_BITS_PER_COMPONENT
    columns: int = DEFAULT_COLUMNS
    early_change: int = DEFAULT_EARLY_CHANGE

    @classmethod
    def from_dict(cls, params: Mapping | Any | None) -> PredictorParams:
        """Build from a possibly partial dictionary; missing keys take defaults."""
        if isinstance(params, PredictorParams):
            return params
        return cls(
            predictor=extract_int(params, "Predictor", DEFAULT_PREDICTOR),
            colors=extract_int(params, "Colors", DEFAULT_COLORS),
            bits_per_component=extract_int(params, "BitsPerComponent", DEFAULT_BITS_PER_COMPONENT),
            columns=extract_int(params, "Columns", DEFAULT_COLUMNS),
            early_change=extract_int(params, "EarlyChange", DEFAULT_EARLY_CHANGE),
        )

    @property
    def bytes_per_pixel(self) -> int:
        return max(1, (self.colors * self.bits_per_component + 7) // 8)

    @property
    def row_width(self) -> int:
        return (self.columns * self.colors * self.bits_per_component + 7) // 8
