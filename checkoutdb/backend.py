"""Lookup service that answers record requests over a pair of named pipes.

Requests are NUL-terminated text messages:

* ``GET <id> <year>`` returns the stored record followed by a NUL byte;
* ``GET_ALL <id>`` returns one ``<year>:<record>`` line per year found;
* ``QUIT`` stops the service.

A lookup that finds nothing is answered with ``NOT_FOUND`` and a NUL byte.
"""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Sequence, Tuple, Union

from checkoutdb.common import (
    DATA_FILE,
    INDEX_FILE,
    MAX_LINE,
    NOT_FOUND,
    REQUEST_PIPE,
    RESPONSE_PIPE,
    TEXT_ENCODING,
    TEXT_ERRORS,
    YEARS,
    iter_entries,
    read_record,
)

logger = logging.getLogger(__name__)

QUIT = "QUIT"
NOT_FOUND_REPLY = NOT_FOUND.encode("ascii") + b"\0"

_GET = re.compile(r"GET\s*([+-]?[0-9]+)(?![0-9])\s*([+-]?[0-9]+)", re.ASCII)
_GET_ALL = re.compile(r"GET_ALL\s*([+-]?[0-9]+)", re.ASCII)

PathLike = Union[str, Path]


def load_index(path: PathLike) -> Dict[Tuple[int, int], int]:
    """Read an index file into a mapping of ``(id, year)`` to data offset.

    When a key appears more than once, the last entry wins.
    """
    index: Dict[Tuple[int, int], int] = {}
    with open(path, "rb") as stream:
        for entry in iter_entries(stream):
            index[(entry.id, entry.year)] = entry.offset
    return index


class RecordStore:
    """Read-only access to the records through the in-memory index."""

    def __init__(self, index_path: PathLike = INDEX_FILE, data_path: PathLike = DATA_FILE):
        self.index = load_index(index_path)
        self._data: BinaryIO = open(data_path, "rb")

    def lookup(self, record_id: int, year: int) -> Optional[str]:
        """Return the record stored for ``record_id`` in ``year``, or None."""
        offset = self.index.get((record_id, year))
        if offset is None:
            return None
        return read_record(self._data, offset)

    def lookup_all(self, record_id: int) -> List[Tuple[int, str]]:
        """Return ``(year, record)`` pairs for every known year, in year order."""
        return [
            (year, record)
            for year in YEARS
            if (record := self.lookup(record_id, year)) is not None
        ]

    def close(self) -> None:
        """Close the data file."""
        self._data.close()

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def _encode(text: str) -> bytes:
    return text.encode(TEXT_ENCODING, TEXT_ERRORS)


def handle_request(store: RecordStore, request: str) -> bytes:
    """Return the reply bytes for one request; unknown requests get no reply."""
    match = _GET.match(request)
    if match:
        record = store.lookup(int(match[1]), int(match[2]))
        if record is None:
            return NOT_FOUND_REPLY
        return _encode(record) + b"\0"

    match = _GET_ALL.match(request)
    if match:
        found = store.lookup_all(int(match[1]))
        if not found:
            return NOT_FOUND_REPLY
        return b"".join(_encode(f"{year}:{record}\n") for year, record in found)

    return b""


def _remove(path: PathLike) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def _receive(path: PathLike) -> Optional[str]:
    """Wait for one writer and return its message, or None if it sent nothing."""
    fd = os.open(path, os.O_RDONLY)
    try:
        data = os.read(fd, MAX_LINE - 1)
    finally:
        os.close(fd)
    if not data:
        return None
    return data.split(b"\0", 1)[0].decode(TEXT_ENCODING, TEXT_ERRORS)


def _send(path: PathLike, reply: bytes) -> None:
    """Wait for one reader and hand it the whole reply."""
    fd = os.open(path, os.O_WRONLY)
    try:
        view = memoryview(reply)
        while view:
            written = os.write(fd, view)
            view = view[written:]
    finally:
        os.close(fd)


def serve(
    store: RecordStore,
    request_pipe: PathLike = REQUEST_PIPE,
    response_pipe: PathLike = RESPONSE_PIPE,
) -> int:
    """Answer requests until ``QUIT`` arrives; return the number of requests answered.

    Both pipes are created fresh on start and removed on exit.
    """
    _remove(request_pipe)
    _remove(response_pipe)
    os.mkfifo(request_pipe, 0o666)
    os.mkfifo(response_pipe, 0o666)
    logger.info("waiting for connections on %s", request_pipe)

    served = 0
    try:
        while True:
            try:
                request = _receive(request_pipe)
            except FileNotFoundError:
                raise
            except OSError as exc:
                logger.error("reading request pipe: %s", exc)
                continue

            if request is None:
                logger.info("client disconnected, waiting for a new connection")
                continue

            if request == QUIT:
                logger.info("shutdown request received")
                break

            try:
                _send(response_pipe, handle_request(store, request))
            except OSError as exc:
                logger.error("writing response pipe: %s", exc)
                continue
            served += 1
    finally:
        _remove(request_pipe)
        _remove(response_pipe)
    return served


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point for the lookup service."""
    parser = argparse.ArgumentParser(description="Serve checkout record lookups.")
    parser.add_argument("--index", default=INDEX_FILE, help="index file to load")
    parser.add_argument("--data", default=DATA_FILE, help="data file to read")
    parser.add_argument("--request-pipe", default=REQUEST_PIPE)
    parser.add_argument("--response-pipe", default=RESPONSE_PIPE)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[BACKEND] %(message)s")
    logger.info("starting lookup service")

    try:
        store = RecordStore(args.index, args.data)
    except OSError as exc:
        name = exc.filename if exc.filename is not None else exc
        print(f"Error: could not open {name}. Run the indexer first.", file=sys.stderr)
        return 1

    with store:
        logger.info("index loaded, %d entries", len(store.index))
        try:
            serve(store, args.request_pipe, args.response_pipe)
        except OSError as exc:
            print(f"Error setting up pipes: {exc}", file=sys.stderr)
            return 1

    logger.info("service stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())