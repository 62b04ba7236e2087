# PDFForge - PDF Stream Filters
# Copyright (c) 2025-2026 Scott Bowman
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
PDFForge Output Sinks

A sink is the writable destination a filter hands its completed output bytes
to. The caller owns the sink; a filter only borrows it between ``begin_*`` and
``end_*``. Any object with a ``write(bytes)`` method qualifies. A failing write
raises ``OSError`` and the filter tears its codec state down before letting it
propagate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ...filters.filter import FilterBase


@runtime_checkable
class OutputSink(Protocol):
    def write(self, data: bytes) -> object: ...


class MemorySink:
    """Collects everything written into one growable buffer."""

    def __init__(self) -> None:
        self.buffer = bytearray()

    def write(self, data: bytes) -> None:
        self.buffer.extend(data)

    def getvalue(self) -> bytes:
        return bytes(self.buffer)

    def __len__(self) -> int:
        return len(self.buffer)


class FileSink:
    """Writes to a binary file object. Does not close the file."""

    def __init__(self, fileobj: BinaryIO) -> None:
        self.fileobj = fileobj
        self.bytes_written = 0

    def write(self, data: bytes) -> None:
        # OSError from the file propagates unchanged
        self.fileobj.write(data)
        self.bytes_written += len(data)


class FilterSink:
    """Feeds written bytes into another filter's block call.

    The target filter must already be inside a session; stacking sinks this
    way pipelines filters without materializing intermediate buffers.
    """

    def __init__(self, filter_impl: FilterBase, encode: bool = True) -> None:
        self.filter = filter_impl
        self.encode = encode

    def write(self, data: bytes) -> None:
        if not data:
            return
        if self.encode:
            self.filter.encode_block(data)
        else:
            self.filter.decode_block(data)
