"""Merkledrop Core - standard Merkle trees for airdrop and distribution data."""

from merkledrop_core.merkle import (
    MerkleError,
    StandardMerkleTree,
    build_tree,
    verify_proof,
)
from merkledrop_core.config import MerkledropConfig, load_config
from merkledrop_core.sources import SourceError, read_leaves, read_source

__version__ = "0.1.0"

__all__ = [
    "MerkleError",
    "MerkledropConfig",
    "SourceError",
    "StandardMerkleTree",
    "build_tree",
    "load_config",
    "read_leaves",
    "read_source",
    "verify_proof",
]
