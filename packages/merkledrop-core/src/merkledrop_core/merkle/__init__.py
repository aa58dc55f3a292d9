"""Merkle tree subsystem for token distribution commitments."""

from merkledrop_core.merkle.encoding import (
    compute_leaf_hash,
    encode_leaf,
    parse_leaf_encoding,
)
from merkledrop_core.merkle.hashing import compute_hash, compute_merkle_hash
from merkledrop_core.merkle.models import (
    AmbiguousLeaf,
    CorruptDump,
    EncodingError,
    InvalidProof,
    LeafEntry,
    LeafNotFound,
    MerkleError,
    MultiProof,
)
from merkledrop_core.merkle.tree import StandardMerkleTree


def build_tree(values, leaf_encoding) -> StandardMerkleTree:
    """Convenience wrapper around StandardMerkleTree.of()."""
    return StandardMerkleTree.of(values, leaf_encoding)


def verify_proof(root, leaf_encoding, leaf, proof) -> bool:
    """Convenience wrapper around StandardMerkleTree.verify_proof()."""
    return StandardMerkleTree.verify_proof(root, leaf_encoding, leaf, proof)


__all__ = [
    "AmbiguousLeaf",
    "CorruptDump",
    "EncodingError",
    "InvalidProof",
    "LeafEntry",
    "LeafNotFound",
    "MerkleError",
    "MultiProof",
    "StandardMerkleTree",
    "build_tree",
    "compute_hash",
    "compute_leaf_hash",
    "compute_merkle_hash",
    "encode_leaf",
    "parse_leaf_encoding",
    "verify_proof",
]
