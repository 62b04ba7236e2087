# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later
from __future__ import annotations

# error types
UNSUPPORTEDOPERATION = 0
UNSUPPORTEDFILTER = 1
VALUEOUTOFRANGE = 2
INVALIDPREDICTOR = 3
FLATE = 4
OUTOFMEMORY = 5
INTERNALLOGIC = 6

error_names = [
    b"unsupportedoperation",
    b"unsupportedfilter",
    b"valueoutofrange",
    b"invalidpredictor",
    b"flate",
    b"outofmemory",
    b"internallogic",
]


class PdfFilterError(Exception):
    """Base class for every error raised by the filter framework.

    ``code`` is one of the integer error types above, ``func_name`` the
    operation that failed. The chain driver fills in ``stage`` and
    ``filter_name`` when the error escapes a chain stage.
    """

    def __init__(self, code: int, func_name: str, detail: str | None = None) -> None:
        self.code = code
        self.func_name = func_name
        self.detail = detail
        self.stage: int | None = None
        self.filter_name: str | None = None
        super().__init__(self._message())

    @property
    def error_name(self) -> str:
        if 0 <= self.code < len(error_names):
            return error_names[self.code].decode()
        return f"error#{self.code}"

    def _message(self) -> str:
        msg = f"/{self.error_name} in --{self.func_name}--"
        if self.detail:
            msg += f": {self.detail}"
        return msg


class UnsupportedOperation(PdfFilterError):
    """The filter does not implement the requested direction."""


class UnsupportedFilterError(UnsupportedOperation):
    """The filter name is unknown or has no implementation."""


class FilterDataError(PdfFilterError):
    """The input stream is corrupt; the session is abandoned."""


class ValueOutOfRange(FilterDataError):
    pass


class InvalidPredictor(FilterDataError):
    pass


class FlateDecodingError(FilterDataError):
    pass


class OutOfMemoryError(PdfFilterError, MemoryError):
    pass


class InternalLogicError(PdfFilterError):
    """Lifecycle misuse (block before begin, double end) or malformed chain."""


_ERROR_CLASSES = {
    UNSUPPORTEDOPERATION: UnsupportedOperation,
    UNSUPPORTEDFILTER: UnsupportedFilterError,
    VALUEOUTOFRANGE: ValueOutOfRange,
    INVALIDPREDICTOR: InvalidPredictor,
    FLATE: FlateDecodingError,
    OUTOFMEMORY: OutOfMemoryError,
    INTERNALLOGIC: InternalLogicError,
}


def e(error_code: int, func_name: str, detail: str | None = None) -> None:
    """Raise the exception mapped to ``error_code``."""
    if func_name.startswith("pdf_"):
        func_name = func_name[4:]

    error_class = _ERROR_CLASSES.get(error_code, PdfFilterError)
    raise error_class(error_code, func_name, detail)
