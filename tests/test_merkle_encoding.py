"""Tests for typed leaf encoding and hashing primitives."""

from __future__ import annotations

import pytest
from eth_abi import encode
from eth_utils import keccak

from merkledrop_core.merkle import (
    EncodingError,
    compute_hash,
    compute_leaf_hash,
    compute_merkle_hash,
    encode_leaf,
    parse_leaf_encoding,
)
from merkledrop_core.merkle.encoding import normalize_field, parse_field_type
from merkledrop_core.merkle.hashing import from_hex, is_node_hex, to_hex

from conftest import ADDR_A, ADDR_B, AIRDROP_ENCODING


# ── Hash primitives ──────────────────────────────────────────────────


def test_compute_hash_is_keccak():
    assert compute_hash(b"hello") == keccak(b"hello")
    assert len(compute_hash(b"")) == 32


def test_compute_merkle_hash_sorted():
    """Child order does not matter."""
    a, b = keccak(b"a"), keccak(b"b")
    assert compute_merkle_hash(a, b) == compute_merkle_hash(b, a)
    low, high = sorted([a, b])
    assert compute_merkle_hash(a, b) == keccak(low + high)


def test_hex_helpers():
    node = keccak(b"x")
    text = to_hex(node)
    assert text.startswith("0x") and len(text) == 66
    assert is_node_hex(text)
    assert from_hex(text) == node
    assert from_hex(node) == node


@pytest.mark.parametrize("bad", ["0x1234", "abc", "0x" + "zz" * 32, 42, None])
def test_from_hex_rejects_malformed(bad):
    with pytest.raises((ValueError, TypeError)):
        from_hex(bad)


# ── Field types ──────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "tag, expected",
    [
        ("address", "address"),
        ("bool", "bool"),
        ("uint256", "uint256"),
        ("uint", "uint256"),
        ("int", "int256"),
        ("uint8", "uint8"),
        ("bytes32", "bytes32"),
        ("bytes", "bytes"),
        ("string", "string"),
        (" uint256 ", "uint256"),
    ],
)
def test_parse_field_type(tag, expected):
    assert parse_field_type(tag) == expected


@pytest.mark.parametrize("tag", ["uint7", "uint264", "bytes33", "bytes0", "float", "", "tuple"])
def test_parse_field_type_rejects_unknown(tag):
    with pytest.raises(EncodingError):
        parse_field_type(tag)


def test_parse_leaf_encoding_rejects_empty_and_strings():
    with pytest.raises(EncodingError):
        parse_leaf_encoding([])
    with pytest.raises(EncodingError):
        parse_leaf_encoding("address")


# ── Value normalization ──────────────────────────────────────────────


def test_address_is_case_insensitive():
    assert normalize_field("address", ADDR_A) == ADDR_A.lower()
    assert normalize_field("address", ADDR_A.lower()) == ADDR_A.lower()


@pytest.mark.parametrize("bad", ["0x1234", "AAAA" * 10, "0x" + "g" * 40, 123, None])
def test_address_rejects_malformed(bad):
    with pytest.raises(ValueError):
        normalize_field("address", bad)


def test_uint256_accepts_strings_and_ints():
    assert normalize_field("uint256", "1000") == 1000
    assert normalize_field("uint256", 1000) == 1000
    assert normalize_field("uint256", "0xff") == 255
    assert normalize_field("uint256", str(2**256 - 1)) == 2**256 - 1


@pytest.mark.parametrize("bad", ["-1", str(2**256), "1.5", "1e18", True, 1.0, ""])
def test_uint256_rejects_invalid(bad):
    with pytest.raises(ValueError):
        normalize_field("uint256", bad)


def test_int_range():
    assert normalize_field("int8", "-128") == -128
    with pytest.raises(ValueError):
        normalize_field("int8", 128)


def test_bool_is_strict():
    assert normalize_field("bool", True) is True
    assert normalize_field("bool", False) is False
    for bad in (1, 0, "true", None):
        with pytest.raises(ValueError):
            normalize_field("bool", bad)


def test_fixed_bytes_length_must_match():
    assert normalize_field("bytes32", "0x" + "11" * 32) == b"\x11" * 32
    with pytest.raises(ValueError):
        normalize_field("bytes32", "0x1111")


# ── Leaf encoding and hashing ────────────────────────────────────────


def test_encode_leaf_matches_abi_encode():
    leaf = (ADDR_A, "1000", True)
    expected = encode(AIRDROP_ENCODING, [ADDR_A.lower(), 1000, True])
    assert encode_leaf(AIRDROP_ENCODING, leaf) == expected
    # abi.encode pads every static field to 32 bytes
    assert len(expected) == 96


def test_leaf_hash_is_double_keccak():
    leaf = (ADDR_A, "1000", True)
    encoded = encode(AIRDROP_ENCODING, [ADDR_A.lower(), 1000, True])
    assert compute_leaf_hash(AIRDROP_ENCODING, leaf) == keccak(keccak(encoded))


def test_leaf_hash_ignores_address_case_and_amount_spelling():
    h1 = compute_leaf_hash(AIRDROP_ENCODING, (ADDR_A, "1000", True))
    h2 = compute_leaf_hash(AIRDROP_ENCODING, (ADDR_A.lower(), 1000, True))
    assert h1 == h2


def test_leaf_hash_differs_per_value():
    h1 = compute_leaf_hash(AIRDROP_ENCODING, (ADDR_A, "1000", True))
    h2 = compute_leaf_hash(AIRDROP_ENCODING, (ADDR_B, "1000", True))
    h3 = compute_leaf_hash(AIRDROP_ENCODING, (ADDR_A, "1000", False))
    assert len({h1, h2, h3}) == 3


def test_encoding_error_names_leaf_and_field():
    with pytest.raises(EncodingError) as exc_info:
        encode_leaf(AIRDROP_ENCODING, (ADDR_A, "-5", True), leaf_index=7)
    assert exc_info.value.leaf_index == 7
    assert exc_info.value.field == 1
    assert "leaf 7" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, ValueError)


def test_encoding_error_on_arity_mismatch():
    with pytest.raises(EncodingError) as exc_info:
        encode_leaf(AIRDROP_ENCODING, (ADDR_A, "5"), leaf_index=0)
    assert exc_info.value.field is None
    assert "expected 3 fields" in str(exc_info.value)


def test_encoding_error_on_non_sequence_leaf():
    with pytest.raises(EncodingError):
        encode_leaf(["string"], "hello")
