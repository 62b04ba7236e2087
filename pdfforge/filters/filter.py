# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

# PDF Stream Filter Framework
#
# Implements the begin/block/end filter lifecycle shared by every codec, the
# filter factory that maps /Filter names to implementations, and the chain
# driver that runs a stream's /Filter array stage by stage.

import logging
from typing import Any, Iterable, Mapping

from ..core import types as pt
from ..core import error as pdf_error

logger = logging.getLogger(__name__)


# Filter Implementation Base Classes

class FilterBase:
    """Abstract base class for all PDF stream filters.

    A session is ``begin_*`` -> zero or more ``*_block`` calls -> ``end_*``,
    each exactly once and in that order. The sink is borrowed for the length
    of the session only. Subclasses implement the underscored hooks and never
    deal with session bookkeeping or failure tear-down themselves.
    """

    FILTER_TYPE = pt.FILTER_UNKNOWN

    def __init__(self) -> None:
        self.sink: pt.OutputSink | None = None
        self.encoding = False
        self.decoding = False
        self.failed = False

    @property
    def name(self) -> str:
        return filter_type_to_name(self.FILTER_TYPE)

    def can_encode(self) -> bool:
        return True

    def can_decode(self) -> bool:
        return True

    # -- encode direction -----------------------------------------------------

    def begin_encode(self, sink: pt.OutputSink, params: Mapping | None = None) -> None:
        """Start an encoding session writing to ``sink``."""
        self._check_supported(encode=True, func_name="begin_encode")
        self._check_idle("begin_encode")
        self.sink = sink
        self.encoding = True
        self.failed = False
        self._guarded("begin_encode", self._begin_encode, params)

    def encode_block(self, data: bytes | bytearray | memoryview) -> None:
        self._check_supported(encode=True, func_name="encode_block")
        if not self.encoding:
            pdf_error.e(pdf_error.INTERNALLOGIC, "encode_block",
                        "begin_encode was not yet called or end_encode was called before this method")
        self._guarded("encode_block", self._encode_block, bytes(data))

    def end_encode(self) -> None:
        self._check_supported(encode=True, func_name="end_encode")
        if not self.encoding:
            pdf_error.e(pdf_error.INTERNALLOGIC, "end_encode",
                        "begin_encode was not yet called or end_encode was called before this method")
        self._guarded("end_encode", self._end_encode)
        self._release()

    # -- decode direction -----------------------------------------------------

    def begin_decode(self, sink: pt.OutputSink, params: Mapping | Any | None = None) -> None:
        """Start a decoding session writing to ``sink``.

        ``params`` is the stream's /DecodeParms entry for this filter, if any.
        """
        self._check_supported(encode=False, func_name="begin_decode")
        self._check_idle("begin_decode")
        self.sink = sink
        self.decoding = True
        self.failed = False
        self._guarded("begin_decode", self._begin_decode, params)

    def decode_block(self, data: bytes | bytearray | memoryview) -> None:
        self._check_supported(encode=False, func_name="decode_block")
        if not self.decoding:
            pdf_error.e(pdf_error.INTERNALLOGIC, "decode_block",
                        "begin_decode was not yet called or end_decode was called before this method")
        self._guarded("decode_block", self._decode_block, bytes(data))

    def end_decode(self) -> None:
        self._check_supported(encode=False, func_name="end_decode")
        if not self.decoding:
            pdf_error.e(pdf_error.INTERNALLOGIC, "end_decode",
                        "begin_decode was not yet called or end_decode was called before this method")
        self._guarded("end_decode", self._end_decode)
        self._release()

    # -- one-shot helpers -----------------------------------------------------

    def encode(self, data: bytes | bytearray | memoryview, params: Mapping | None = None) -> bytes:
        """Encode a complete buffer and return the result."""
        sink = pt.MemorySink()
        self.begin_encode(sink, params)
        self.encode_block(data)
        self.end_encode()
        return sink.getvalue()

    def decode(self, data: bytes | bytearray | memoryview, params: Mapping | Any | None = None) -> bytes:
        """Decode a complete buffer and return the result."""
        sink = pt.MemorySink()
        self.begin_decode(sink, params)
        self.decode_block(data)
        self.end_decode()
        return sink.getvalue()

    def fail_encode_decode(self) -> None:
        """Abandon the current session and release all codec state.

        Called before any error leaves the filter. The instance has to be
        begun again before it can be used.
        """
        try:
            self._teardown()
        finally:
            self.failed = True
            self._release()

    # -- subclass hooks -------------------------------------------------------

    def _begin_encode(self, params: Mapping | None) -> None:
        pass

    def _encode_block(self, data: bytes) -> None:
        raise NotImplementedError("Subclasses must implement _encode_block")

    def _end_encode(self) -> None:
        pass

    def _begin_decode(self, params: Mapping | Any | None) -> None:
        pass

    def _decode_block(self, data: bytes) -> None:
        raise NotImplementedError("Subclasses must implement _decode_block")

    def _end_decode(self) -> None:
        pass

    def _teardown(self) -> None:
        """Drop engine/table state after a failure."""

    # -- internals ------------------------------------------------------------

    def _check_supported(self, encode: bool, func_name: str) -> None:
        if encode and not self.can_encode():
            pdf_error.e(pdf_error.UNSUPPORTEDOPERATION, func_name,
                        f"{self.name} does not support encoding")
        if not encode and not self.can_decode():
            pdf_error.e(pdf_error.UNSUPPORTEDOPERATION, func_name,
                        f"{self.name} does not support decoding")

    def _check_idle(self, func_name: str) -> None:
        if self.encoding or self.decoding:
            pdf_error.e(pdf_error.INTERNALLOGIC, func_name,
                        "a session is already active on this filter")

    def _guarded(self, func_name: str, method, *args) -> None:
        try:
            method(*args)
        except MemoryError as exc:
            self.fail_encode_decode()
            if isinstance(exc, pdf_error.OutOfMemoryError):
                raise
            raise pdf_error.OutOfMemoryError(pdf_error.OUTOFMEMORY, func_name, str(exc)) from exc
        except Exception:
            self.fail_encode_decode()
            raise

    def _release(self) -> None:
        self.sink = None
        self.encoding = False
        self.decoding = False


class UnsupportedFilter(FilterBase):
    """Stand-in for a filter name without an implementation.

    Every operation fails with UnsupportedFilterError, so callers can report
    "filter not implemented" instead of "corrupt data".
    """

    def __init__(self, filter_name: str, filter_type: int = pt.FILTER_UNKNOWN) -> None:
        super().__init__()
        self.filter_name = filter_name
        self.FILTER_TYPE = filter_type

    @property
    def name(self) -> str:
        return self.filter_name

    def can_encode(self) -> bool:
        return False

    def can_decode(self) -> bool:
        return False

    def _check_supported(self, encode: bool, func_name: str) -> None:
        pdf_error.e(pdf_error.UNSUPPORTEDFILTER, func_name,
                    f"filter {self.filter_name} is not implemented")


# Filter names and the factory

def _unwrap_name(name: Any) -> str:
    if hasattr(name, "val"):
        name = name.val
    if isinstance(name, (bytes, bytearray)):
        name = bytes(name).decode("latin-1")
    name = str(name)
    if name.startswith("/"):
        name = name[1:]
    return name


def filter_name_to_type(name: Any) -> int:
    """Map a /Filter name (full or inline abbreviation) to its type tag."""
    name = _unwrap_name(name)
    if name in pt.FILTER_NAMES:
        return pt.FILTER_NAMES.index(name)
    return pt.FILTER_ABBREVIATIONS.get(name, pt.FILTER_UNKNOWN)


def filter_type_to_name(filter_type: int, abbreviated: bool = False) -> str:
    """Map a type tag back to its /Filter name."""
    if abbreviated:
        for abbrev, tag in pt.FILTER_ABBREVIATIONS.items():
            if tag == filter_type:
                return abbrev
    if 0 <= filter_type < len(pt.FILTER_NAMES):
        return pt.FILTER_NAMES[filter_type]
    return "Unknown"


def _filter_classes() -> dict:
    # Deferred imports to avoid circular dependency (leaf modules import
    # FilterBase from this module)
    from .filter_ascii import ASCIIHexFilter, ASCII85Filter
    from .filter_compression import RunLengthFilter, LZWFilter, FlateFilter

    return {
        pt.FILTER_ASCII_HEX: ASCIIHexFilter,
        pt.FILTER_ASCII_85: ASCII85Filter,
        pt.FILTER_LZW: LZWFilter,
        pt.FILTER_FLATE: FlateFilter,
        pt.FILTER_RUN_LENGTH: RunLengthFilter,
    }


def create_filter(filter_name: Any) -> FilterBase:
    """Factory function to create a fresh filter for a name or type tag.

    Image codecs, Crypt and unknown names produce an UnsupportedFilter.
    """
    if isinstance(filter_name, int):
        filter_type = filter_name
        display_name = filter_type_to_name(filter_type)
    else:
        display_name = _unwrap_name(filter_name)
        filter_type = filter_name_to_type(display_name)

    filter_class = _filter_classes().get(filter_type)
    if filter_class is None:
        logger.debug("No implementation for filter %s", display_name)
        return UnsupportedFilter(display_name, filter_type)
    return filter_class()


def create_filter_list(filter_value: Any) -> list[str]:
    """Normalize a /Filter entry (one name or an array of names) to a list."""
    if filter_value is None:
        return []
    if hasattr(filter_value, "val") and isinstance(filter_value.val, (list, tuple)):
        filter_value = filter_value.val
    if isinstance(filter_value, (list, tuple)):
        return [_unwrap_name(item) for item in filter_value]
    return [_unwrap_name(filter_value)]


def filter_supports(filter_name: Any, encode: bool = False) -> bool:
    """Check whether a filter implements a direction, without raising."""
    filter_impl = create_filter(filter_name)
    return filter_impl.can_encode() if encode else filter_impl.can_decode()


# Filter chains

class FilterChain:
    """An ordered /Filter array together with its parallel /DecodeParms.

    Decoding runs stage 0 to completion, then feeds its whole output to stage
    1, and so on. Stages are not pipelined: predictors need the complete
    output of the stage before them. The first failing stage aborts the chain
    and the error carries ``stage`` and ``filter_name``.
    """

    def __init__(self, filters: Any, decode_parms: Any = None) -> None:
        self.filter_names = create_filter_list(filters)
        self.decode_parms = self._normalize_parms(decode_parms)

    def _normalize_parms(self, decode_parms: Any) -> list:
        count = len(self.filter_names)
        if decode_parms is None:
            return [None] * count
        if hasattr(decode_parms, "val") and isinstance(decode_parms.val, (list, tuple)):
            decode_parms = decode_parms.val
        if not isinstance(decode_parms, (list, tuple)):
            decode_parms = [decode_parms]
        if len(decode_parms) != count:
            pdf_error.e(pdf_error.INTERNALLOGIC, "FilterChain",
                        f"{len(decode_parms)} /DecodeParms entries for {count} filters")
        return list(decode_parms)

    def __len__(self) -> int:
        return len(self.filter_names)

    def __iter__(self) -> Iterable[str]:
        return iter(self.filter_names)

    def can_decode(self) -> bool:
        return all(filter_supports(name) for name in self.filter_names)

    def can_encode(self) -> bool:
        return all(filter_supports(name, encode=True) for name in self.filter_names)

    def decode(self, data: bytes | bytearray | memoryview) -> bytes:
        """Run every stage in order and return the fully decoded buffer."""
        sink = pt.MemorySink()
        self.decode_to(data, sink)
        return sink.getvalue()

    def decode_to(self, data: bytes | bytearray | memoryview, sink: pt.OutputSink) -> None:
        """Decode into ``sink``; only the last stage streams into it."""
        data = bytes(data)
        if not self.filter_names:
            sink.write(data)
            return

        last = len(self.filter_names) - 1
        for stage, name in enumerate(self.filter_names):
            target = sink if stage == last else pt.MemorySink()
            logger.debug("Decoding stage %d (%s): %d bytes in", stage, name, len(data))
            self._run_stage(stage, name, data, target, encode=False,
                            params=self.decode_parms[stage])
            if stage != last:
                data = target.getvalue()

    def encode(self, data: bytes | bytearray | memoryview) -> bytes:
        """Encode so that ``decode`` restores ``data``: stages run last to first."""
        data = bytes(data)
        for stage in reversed(range(len(self.filter_names))):
            name = self.filter_names[stage]
            target = pt.MemorySink()
            logger.debug("Encoding stage %d (%s): %d bytes in", stage, name, len(data))
            self._run_stage(stage, name, data, target, encode=True,
                            params=self.decode_parms[stage])
            data = target.getvalue()
        return data

    def _run_stage(self, stage: int, name: str, data: bytes, target: pt.OutputSink,
                   encode: bool, params: Any) -> None:
        filter_impl = create_filter(name)
        try:
            if encode:
                filter_impl.begin_encode(target, params)
                filter_impl.encode_block(data)
                filter_impl.end_encode()
            else:
                filter_impl.begin_decode(target, params)
                filter_impl.decode_block(data)
                filter_impl.end_decode()
        except pdf_error.PdfFilterError as exc:
            exc.stage = stage
            exc.filter_name = name
            if isinstance(exc, pdf_error.UnsupportedOperation):
                logger.info("Filter chain stage %d (%s) not supported: %s", stage, name, exc)
            else:
                logger.error("Filter chain aborted at stage %d (%s): %s", stage, name, exc)
            raise


class FilteredStream:
    """Writable stream that runs one filter session over a sink.

    ``write`` feeds a block, ``close`` ends the session. Wrapping the sink of
    one FilteredStream in a FilterSink for another pipelines the filters. As a
    context manager, an exception in the body abandons the session instead of
    ending it.
    """

    def __init__(self, filter_impl: FilterBase, sink: pt.OutputSink, encode: bool = True,
                 params: Mapping | Any | None = None) -> None:
        self.filter = filter_impl
        self.encode = encode
        self.closed = False
        if encode:
            self.filter.begin_encode(sink, params)
        else:
            self.filter.begin_decode(sink, params)

    def write(self, data: bytes | bytearray | memoryview) -> int:
        if self.closed:
            pdf_error.e(pdf_error.INTERNALLOGIC, "write", "stream is closed")
        if self.encode:
            self.filter.encode_block(data)
        else:
            self.filter.decode_block(data)
        return len(data)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.encode:
            self.filter.end_encode()
        else:
            self.filter.end_decode()

    def __enter__(self) -> FilteredStream:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        elif not self.closed:
            self.closed = True
            self.filter.fail_encode_decode()
