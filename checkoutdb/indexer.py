"""Build the data and index files from the yearly checkout CSV exports."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Sequence

from checkoutdb.common import (
    DATA_FILE,
    INDEX_FILE,
    MAX_FIELDS,
    YEARS,
    IndexEntry,
    write_record,
)

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"\s*[+-]?\d+")


def csv_name(year: int) -> str:
    """Return the file name of the CSV export for ``year``."""
    return f"Checkouts_By_Title_Data_Lens_{year}.csv"


def parse_record_id(line: str) -> Optional[int]:
    """Return the id in the second field of a CSV line.

    Empty fields are skipped when splitting. Returns ``None`` when the line has
    fewer than two fields; raises ``ValueError`` when the id is not a
    non-negative integer.
    """
    fields = [field for field in line.split(",") if field][:MAX_FIELDS]
    if len(fields) < 2:
        return None
    text = fields[1]
    if not _ID_PATTERN.fullmatch(text):
        raise ValueError(f"invalid id {text!r}")
    record_id = int(text)
    if record_id < 0:
        raise ValueError(f"invalid id {text!r}")
    return record_id


def process_line(
    line: str,
    year: int,
    line_number: int,
    data_file: BinaryIO,
    index_file: BinaryIO,
) -> Optional[IndexEntry]:
    """Store one CSV line and its index entry; return the entry, or None if skipped."""
    if not line:
        return None
    try:
        record_id = parse_record_id(line)
    except ValueError as exc:
        logger.warning("line %d: %s", line_number, exc)
        return None
    if record_id is None:
        return None
    offset = write_record(data_file, line)
    entry = IndexEntry(record_id, year, offset)
    index_file.write(entry.pack())
    return entry


def index_csv(
    csv_file: Iterable[str],
    year: int,
    data_file: BinaryIO,
    index_file: BinaryIO,
) -> int:
    """Index every line after the header; return the number of non-empty lines seen."""
    total = 0
    lines = iter(csv_file)
    line_number = 0
    if next(lines, None) is not None:
        line_number += 1
    for raw in lines:
        line_number += 1
        line = re.split(r"[\r\n]", raw, maxsplit=1)[0]
        if line:
            process_line(line, year, line_number, data_file, index_file)
            total += 1
    return total


def build_index(
    directory: "str | Path",
    data_path: "str | Path",
    index_path: "str | Path",
) -> int:
    """Index the CSV export of every year found in ``directory``.

    Missing years are skipped with a warning. Returns the total number of
    non-empty data lines processed.
    """
    directory = Path(directory)
    total = 0
    with open(data_path, "wb") as data_file, open(index_path, "wb") as index_file:
        for year in YEARS:
            csv_path = directory / csv_name(year)
            try:
                csv_file = open(
                    csv_path, encoding="utf-8", errors="surrogateescape", newline="\n"
                )
            except OSError:
                logger.warning("could not open %s, skipping", csv_path.name)
                continue
            with csv_file:
                logger.info("processing %s", csv_path.name)
                total += index_csv(csv_file, year, data_file, index_file)
    return total


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point for building the record store."""
    parser = argparse.ArgumentParser(
        description="Index the yearly checkout CSV files."
    )
    parser.add_argument("--dir", default=".", help="directory holding the CSV files")
    parser.add_argument("--data", default=DATA_FILE, help="data file to write")
    parser.add_argument("--index", default=INDEX_FILE, help="index file to write")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    print("Starting indexing...")
    try:
        total = build_index(args.dir, args.data, args.index)
    except OSError as exc:
        print(f"Error creating output files: {exc}", file=sys.stderr)
        return 1

    print("\nIndexing complete.")
    print(f"Total records processed: {total}")
    print(f"Files written: {args.data} and {args.index}")
    return 0


if __name__ == "__main__":
    sys.exit(main())