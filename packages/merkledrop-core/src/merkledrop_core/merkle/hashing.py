"""Keccak-256 primitives shared by tree construction and verification."""

from __future__ import annotations

import re

from eth_utils import decode_hex, encode_hex, keccak

HASH_SIZE = 32

_HEX32_RE = re.compile(r"0x[0-9a-fA-F]{64}")


def compute_hash(content: bytes) -> bytes:
    """Single keccak-256 digest."""
    return keccak(content)


def compute_merkle_hash(a: bytes, b: bytes) -> bytes:
    """Sorted-pair combine: hash the two children in ascending byte order.

    Swapping *a* and *b* gives the same parent, so verifiers never need to
    know whether a sibling sat on the left or on the right.
    """
    if b < a:
        a, b = b, a
    return keccak(a + b)


def to_hex(node: bytes) -> str:
    return encode_hex(node)


def is_node_hex(value: object) -> bool:
    """True if *value* is a 0x-prefixed 32-byte hex string."""
    return isinstance(value, str) and _HEX32_RE.fullmatch(value) is not None


def from_hex(value: str | bytes) -> bytes:
    """Parse a 32-byte node given as 0x-hex or raw bytes.

    Raises ValueError for anything that is not exactly 32 bytes.
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif is_node_hex(value):
        raw = decode_hex(value)
    else:
        raise ValueError(f"expected a 0x-prefixed 32-byte hex string, got {value!r}")
    if len(raw) != HASH_SIZE:
        raise ValueError(f"expected {HASH_SIZE} bytes, got {len(raw)}")
    return raw
