"""CSV readers that turn distribution files into leaf tuples."""

from __future__ import annotations

import csv
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from merkledrop_core.config.models import CsvConfig, TreeSourceConfig

logger = logging.getLogger(__name__)

_BOOL_TEXT = {"true": True, "false": False}


class SourceError(Exception):
    """Raised when a leaf source cannot be read or is malformed."""

    def __init__(self, path: str | Path, message: str, row: int | None = None) -> None:
        self.path = str(path)
        self.row = row
        where = f"{self.path}, row {row}" if row is not None else self.path
        super().__init__(f"{where}: {message}")


def parse_bool(text: str) -> bool:
    """Strict textual boolean: only ``true`` or ``false`` (any case)."""
    value = _BOOL_TEXT.get(text.strip().lower())
    if value is None:
        raise ValueError(f"expected 'true' or 'false', got {text!r}")
    return value


def read_leaves(
    path: str | Path,
    columns: Sequence[str],
    leaf_encoding: Sequence[str],
    csv_config: CsvConfig | None = None,
) -> list[tuple[Any, ...]]:
    """Read one leaf tuple per CSV row.

    Address and integer cells are kept as the exact strings in the file so
    large amounts never pass through a float. ``bool`` columns are parsed
    strictly. Raises SourceError for a missing file, missing columns, a bad
    boolean cell, an undecodable file or a file without data rows.
    """
    csv_config = csv_config or CsvConfig()
    path = Path(path)
    if not path.is_file():
        raise SourceError(path, "CSV file not found")

    try:
        rows = _read_rows(path, columns, leaf_encoding, csv_config)
    except (UnicodeDecodeError, csv.Error) as e:
        raise SourceError(path, f"Error reading CSV file: {e}") from e

    if not rows:
        raise SourceError(path, "No data found in the CSV file")
    logger.debug("Read %d leaves from %s", len(rows), path)
    return rows


def _read_rows(
    path: Path,
    columns: Sequence[str],
    leaf_encoding: Sequence[str],
    csv_config: CsvConfig,
) -> list[tuple[Any, ...]]:
    rows: list[tuple[Any, ...]] = []
    with open(path, newline="", encoding=csv_config.encoding) as f:
        reader = csv.DictReader(f, delimiter=csv_config.delimiter)
        missing = [c for c in columns if c not in (reader.fieldnames or [])]
        if missing:
            raise SourceError(path, f"missing column(s): {', '.join(missing)}")

        # Header is line 1, so data starts on line 2.
        for line_no, record in enumerate(reader, start=2):
            cells = [(record.get(c) or "").strip() for c in columns]
            if csv_config.skip_blank_rows and not any(cells):
                logger.warning("Skipping blank row %d in %s", line_no, path)
                continue

            leaf: list[Any] = []
            for column, tag, cell in zip(columns, leaf_encoding, cells):
                if tag == "bool":
                    try:
                        leaf.append(parse_bool(cell))
                    except ValueError as e:
                        raise SourceError(path, f"column {column}: {e}", row=line_no) from e
                else:
                    leaf.append(cell)
            rows.append(tuple(leaf))
    return rows


def read_source(
    path: str | Path, source: TreeSourceConfig, csv_config: CsvConfig | None = None
) -> list[tuple[Any, ...]]:
    """Read *path* using the column mapping of an airdrop/distribution config."""
    return read_leaves(path, source.columns, source.leaf_encoding, csv_config)
