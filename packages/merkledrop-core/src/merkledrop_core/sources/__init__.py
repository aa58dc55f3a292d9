"""Leaf sources: readers that produce leaf tuples for the Merkle engine."""

from merkledrop_core.sources.csv_source import (
    SourceError,
    parse_bool,
    read_leaves,
    read_source,
)

__all__ = [
    "SourceError",
    "parse_bool",
    "read_leaves",
    "read_source",
]
