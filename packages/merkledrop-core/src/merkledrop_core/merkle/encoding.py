"""Typed leaf encoding.

A leaf is a tuple of values described by a parallel list of ABI type tags
(the *leaf encoding*). Values are normalized per tag, ABI-encoded with
``eth_abi.encode`` and double-hashed, which is the leaf format expected by
OpenZeppelin's ``MerkleProof`` verifier.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from eth_abi import encode
from eth_abi.exceptions import EncodingError as AbiEncodingError
from eth_utils import decode_hex

from merkledrop_core.merkle.hashing import compute_hash
from merkledrop_core.merkle.models import EncodingError

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")
_HEX_RE = re.compile(r"0x(?:[0-9a-fA-F]{2})*")
_INT_TYPE_RE = re.compile(r"(u?)int(\d*)")
_FIXED_BYTES_RE = re.compile(r"bytes(\d+)")


def parse_field_type(tag: str) -> str:
    """Validate one type tag and return its canonical spelling.

    ``uint``/``int`` are widened to their 256-bit aliases, as the ABI does.
    """
    if not isinstance(tag, str):
        raise EncodingError(f"field type must be a string, got {tag!r}")
    tag = tag.strip()
    if tag in ("address", "bool", "bytes", "string"):
        return tag
    m = _INT_TYPE_RE.fullmatch(tag)
    if m:
        bits = int(m.group(2) or 256)
        if bits % 8 or not 8 <= bits <= 256:
            raise EncodingError(f"unsupported integer width in {tag!r}")
        return f"{m.group(1)}int{bits}"
    m = _FIXED_BYTES_RE.fullmatch(tag)
    if m and 1 <= int(m.group(1)) <= 32:
        return tag
    raise EncodingError(f"unsupported field type {tag!r}")


def parse_leaf_encoding(tags: Sequence[str]) -> tuple[str, ...]:
    if isinstance(tags, str) or not isinstance(tags, Sequence) or not tags:
        raise EncodingError("leaf encoding must be a non-empty list of type tags")
    return tuple(parse_field_type(t) for t in tags)


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("booleans are not integers")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith(("0x", "-0x")):
            return int(text, 16)
        if re.fullmatch(r"-?\d+", text):
            return int(text)
    raise ValueError(f"expected an integer or integer string, got {value!r}")


def _parse_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and _HEX_RE.fullmatch(value):
        return decode_hex(value)
    raise ValueError(f"expected bytes or a 0x-prefixed hex string, got {value!r}")


def normalize_field(tag: str, value: Any) -> Any:
    """Convert *value* to the Python type ``eth_abi`` expects for *tag*.

    Raises ValueError if the value is not valid for the tag.
    """
    if tag == "address":
        if isinstance(value, (bytes, bytearray)) and len(value) == 20:
            return "0x" + bytes(value).hex()
        if not isinstance(value, str) or not _ADDRESS_RE.fullmatch(value.strip()):
            raise ValueError(f"invalid address {value!r}")
        # Case-insensitive: the EIP-55 checksum is not enforced.
        return value.strip().lower()
    if tag == "bool":
        if not isinstance(value, bool):
            raise ValueError(f"expected true or false, got {value!r}")
        return value
    if tag == "string":
        if not isinstance(value, str):
            raise ValueError(f"expected a string, got {value!r}")
        return value
    if tag == "bytes":
        return _parse_bytes(value)

    m = _INT_TYPE_RE.fullmatch(tag)
    if m:
        number = _parse_int(value)
        bits = int(m.group(2))
        if m.group(1):
            low, high = 0, 2**bits - 1
        else:
            low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
        if not low <= number <= high:
            raise ValueError(f"{number} is out of range for {tag}")
        return number

    m = _FIXED_BYTES_RE.fullmatch(tag)
    if m:
        raw = _parse_bytes(value)
        if len(raw) != int(m.group(1)):
            raise ValueError(f"expected {m.group(1)} bytes for {tag}, got {len(raw)}")
        return raw

    raise ValueError(f"unsupported field type {tag!r}")


def encode_leaf(
    leaf_encoding: Sequence[str], value: Sequence[Any], leaf_index: int | None = None
) -> bytes:
    """ABI-encode one leaf tuple (``abi.encode``, not ``encodePacked``)."""
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise EncodingError(
            f"leaf must be a list or tuple, got {type(value).__name__}",
            leaf_index=leaf_index,
        )
    if len(value) != len(leaf_encoding):
        raise EncodingError(
            f"expected {len(leaf_encoding)} fields, got {len(value)}",
            leaf_index=leaf_index,
        )
    normalized = []
    for field, (tag, item) in enumerate(zip(leaf_encoding, value)):
        try:
            normalized.append(normalize_field(tag, item))
        except ValueError as e:
            raise EncodingError(str(e), leaf_index=leaf_index, field=field) from e
    try:
        return encode(list(leaf_encoding), normalized)
    except AbiEncodingError as e:
        raise EncodingError(str(e), leaf_index=leaf_index) from e


def compute_leaf_hash(
    leaf_encoding: Sequence[str], value: Sequence[Any], leaf_index: int | None = None
) -> bytes:
    """keccak256(keccak256(abi.encode(value))).

    Leaf hashes are double hashed; internal nodes are a single hash of two
    concatenated children.
    """
    return compute_hash(compute_hash(encode_leaf(leaf_encoding, value, leaf_index)))
