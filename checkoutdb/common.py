"""Shared names, limits and on-disk formats of the checkout record store.

The data file holds records as a little-endian 64-bit length (which counts a
trailing NUL byte) followed by the record text and that NUL. The index file is
a flat sequence of fixed-size entries mapping ``(id, year)`` to the offset of
a record in the data file.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO, Iterator

DATA_FILE = "checkouts.bin"
INDEX_FILE = "index.bin"
REQUEST_PIPE = "/tmp/checkout_req_pipe"
RESPONSE_PIPE = "/tmp/checkout_res_pipe"

MAX_LINE = 4096
MAX_FIELDS = 20
FIRST_YEAR = 2005
LAST_YEAR = 2017
YEARS = range(FIRST_YEAR, LAST_YEAR + 1)

TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"

NOT_FOUND = "NOT_FOUND"

# id (int64), year (int32), 4 bytes of padding, offset (int64)
_ENTRY = struct.Struct("<qi4xq")
_LENGTH = struct.Struct("<Q")

ENTRY_SIZE = _ENTRY.size
LENGTH_SIZE = _LENGTH.size


@dataclass(frozen=True)
class IndexEntry:
    """Location of one record: its id, its year and its data-file offset."""

    id: int
    year: int
    offset: int

    def pack(self) -> bytes:
        """Return the fixed-size binary form stored in the index file."""
        return _ENTRY.pack(self.id, self.year, self.offset)


def unpack_entry(data: bytes) -> IndexEntry:
    """Decode one packed index entry."""
    if len(data) != ENTRY_SIZE:
        raise ValueError(
            f"index entry must be {ENTRY_SIZE} bytes, got {len(data)}"
        )
    record_id, year, offset = _ENTRY.unpack(data)
    return IndexEntry(record_id, year, offset)


def iter_entries(stream: BinaryIO) -> Iterator[IndexEntry]:
    """Yield every complete entry of an index stream; a partial tail is ignored."""
    while True:
        chunk = stream.read(ENTRY_SIZE)
        if len(chunk) < ENTRY_SIZE:
            return
        yield unpack_entry(chunk)


def write_record(stream: BinaryIO, line: str) -> int:
    """Append a record at the stream's position and return that offset."""
    offset = stream.tell()
    payload = line.encode(TEXT_ENCODING, TEXT_ERRORS) + b"\0"
    stream.write(_LENGTH.pack(len(payload)))
    stream.write(payload)
    return offset


def read_record(stream: BinaryIO, offset: int) -> str:
    """Read the record stored at ``offset`` and return its text."""
    stream.seek(offset)
    header = stream.read(LENGTH_SIZE)
    if len(header) < LENGTH_SIZE:
        raise ValueError(f"no record length at offset {offset}")
    (length,) = _LENGTH.unpack(header)
    payload = stream.read(length)
    if len(payload) < length:
        raise ValueError(f"record at offset {offset} is truncated")
    if payload.endswith(b"\0"):
        payload = payload[:-1]
    return payload.decode(TEXT_ENCODING, TEXT_ERRORS)