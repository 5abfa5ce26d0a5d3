"""Interactive client that queries the lookup service through named pipes."""

from __future__ import annotations

import argparse
import os
import re
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO, Union

from checkoutdb.backend import QUIT
from checkoutdb.common import (
    FIRST_YEAR,
    LAST_YEAR,
    NOT_FOUND,
    REQUEST_PIPE,
    RESPONSE_PIPE,
    TEXT_ENCODING,
    TEXT_ERRORS,
)

PathLike = Union[str, Path]

RESULTS_TITLE = ">> Result(s):"
HEADER = "Year:BibNumber,ItemBarcode,ItemType,Collection,CallNumber,CheckoutDateTime"
NOT_FOUND_MESSAGE = ">> Record not found."
NO_RESPONSE_MESSAGE = ">> No response from the backend or record not found."
INVALID_YEAR = "Invalid year."
INVALID_ID = "Invalid ID."
INVALID_OPTION = "Invalid option"
SEND_ERROR = "Error talking to the backend"

_INTEGER = re.compile(r"\s*([+-]?[0-9]+)", re.ASCII)


def format_response(data: bytes) -> str:
    """Render a reply from the lookup service as it is shown to the user."""
    lines = ["", RESULTS_TITLE, HEADER]
    text = data.partition(b"\0")[0]
    if text == NOT_FOUND.encode("ascii"):
        lines.append(NOT_FOUND_MESSAGE)
    elif not data:
        lines.append(NO_RESPONSE_MESSAGE)
    else:
        return "\n".join(lines) + "\n" + text.decode(TEXT_ENCODING, TEXT_ERRORS)
    return "\n".join(lines) + "\n"


def send_request(
    request: str,
    request_pipe: PathLike = REQUEST_PIPE,
    response_pipe: PathLike = RESPONSE_PIPE,
) -> bytes:
    """Send one request and return the full reply.

    A ``QUIT`` request gets no reply, so none is awaited.
    """
    fd = os.open(request_pipe, os.O_WRONLY)
    try:
        os.write(fd, request.encode(TEXT_ENCODING, TEXT_ERRORS) + b"\0")
    finally:
        os.close(fd)

    if request == QUIT:
        return b""

    fd = os.open(response_pipe, os.O_RDONLY)
    chunks: List[bytes] = []
    try:
        while chunk := os.read(fd, 65536):
            chunks.append(chunk)
    finally:
        os.close(fd)
    return b"".join(chunks)


def _prompt(output: TextIO, text: str) -> None:
    print(text, end="", file=output)
    output.flush()


def _read_nonblank(input_stream: TextIO) -> Optional[str]:
    while True:
        line = input_stream.readline()
        if not line:
            return None
        if line.strip():
            return line


def _read_int(input_stream: TextIO) -> Optional[int]:
    line = _read_nonblank(input_stream)
    if line is None:
        return None
    match = _INTEGER.match(line)
    return int(match[1]) if match else None


def ask_by_id_and_year(input_stream: TextIO, output: TextIO) -> Optional[str]:
    """Ask for a year and an id; return the ``GET`` request, or None if input is invalid."""
    _prompt(output, f"\nYear ({FIRST_YEAR}-{LAST_YEAR}): ")
    year = _read_int(input_stream)
    if year is None or not FIRST_YEAR <= year <= LAST_YEAR:
        print(INVALID_YEAR, file=output)
        return None

    _prompt(output, "ID to search: ")
    record_id = _read_int(input_stream)
    if record_id is None:
        print(INVALID_ID, file=output)
        return None
    return f"GET {record_id} {year}"


def ask_all_years(input_stream: TextIO, output: TextIO) -> Optional[str]:
    """Ask for an id; return the ``GET_ALL`` request, or None if input is invalid."""
    _prompt(output, "\nID to search in all years: ")
    record_id = _read_int(input_stream)
    if record_id is None:
        print(INVALID_ID, file=output)
        return None
    return f"GET_ALL {record_id}"


def _exchange(
    request: str, output: TextIO, request_pipe: PathLike, response_pipe: PathLike
) -> None:
    try:
        reply = send_request(request, request_pipe, response_pipe)
    except OSError as exc:
        print(f"{SEND_ERROR} ({exc}). Is the backend running?", file=output)
        return
    if request != QUIT:
        print(format_response(reply), end="", file=output)


def run_menu(
    input_stream: Optional[TextIO] = None,
    output: Optional[TextIO] = None,
    request_pipe: PathLike = REQUEST_PIPE,
    response_pipe: PathLike = RESPONSE_PIPE,
) -> None:
    """Run the main menu until the user exits or input runs out."""
    if input_stream is None:
        input_stream = sys.stdin
    if output is None:
        output = sys.stdout

    while True:
        print("\n--- MAIN MENU ---", file=output)
        print("1) Search by ID and year", file=output)
        print("2) Search ID in all years", file=output)
        print("3) Exit", file=output)
        _prompt(output, "Option: ")

        line = _read_nonblank(input_stream)
        if line is None:
            return
        option = line.strip()[0]

        if option == "1":
            request = ask_by_id_and_year(input_stream, output)
            if request is not None:
                _exchange(request, output, request_pipe, response_pipe)
        elif option == "2":
            request = ask_all_years(input_stream, output)
            if request is not None:
                _exchange(request, output, request_pipe, response_pipe)
        elif option == "3":
            print("Sending shutdown signal to the backend...", file=output)
            _exchange(QUIT, output, request_pipe, response_pipe)
            print("Exiting...", file=output)
            return
        else:
            print(INVALID_OPTION, file=output)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point for the interactive client."""
    parser = argparse.ArgumentParser(description="Query the checkout lookup service.")
    parser.add_argument("--request-pipe", default=REQUEST_PIPE)
    parser.add_argument("--response-pipe", default=RESPONSE_PIPE)
    args = parser.parse_args(argv)

    print("\n=== Checkout Search Client ===")
    print("Make sure the backend process is running.")
    run_menu(sys.stdin, sys.stdout, args.request_pipe, args.response_pipe)
    print("Program finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())