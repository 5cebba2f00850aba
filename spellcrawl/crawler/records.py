"""
Input records: the list of pages to spell check.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List
from urllib.parse import urlparse


class RecordSourceError(Exception):
    """Raised when the input file cannot be read or contains a malformed row."""
    pass


@dataclass(frozen=True)
class Record:
    """One page to process, identified by its position in the input."""
    label: str
    target: str


def _is_valid_target(target: str) -> bool:
    parsed = urlparse(target)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def parse_records(rows: Iterable[List[str]], source: str = '<input>') -> List[Record]:
    """
    Validate parsed CSV rows and turn them into records.

    The first row is the header and is always skipped. Blank rows are ignored,
    every other row must hold exactly a non-empty label and an absolute
    http(s) URL.

    Args:
        rows: Rows as produced by ``csv.reader``
        source: Name used in error messages

    Returns:
        Records in input order
    """
    records: List[Record] = []

    for line_number, row in enumerate(rows, start=1):
        if line_number == 1:
            continue

        fields = [value.strip() for value in row]
        if not any(fields):
            continue

        if len(fields) != 2:
            raise RecordSourceError(
                f"{source}:{line_number}: expected 2 fields (label, target), got {len(fields)}"
            )

        label, target = fields
        if not label:
            raise RecordSourceError(f"{source}:{line_number}: empty label")

        if not _is_valid_target(target):
            raise RecordSourceError(f"{source}:{line_number}: invalid target URL {target!r}")

        records.append(Record(label=label, target=target))

    return records


def load_records(path: str, encoding: str = 'utf-8') -> List[Record]:
    """Read and validate the input CSV file."""
    logger = logging.getLogger(__name__)
    file_path = Path(path)

    if not file_path.is_file():
        raise RecordSourceError(f"Input file not found: {file_path}")

    try:
        with open(file_path, 'r', encoding=encoding, newline='') as file:
            records = parse_records(csv.reader(file, skipinitialspace=True), str(file_path))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise RecordSourceError(f"Could not read input file {file_path}: {e}") from e

    logger.info(f"Loaded {len(records)} records from {file_path}")
    return records
