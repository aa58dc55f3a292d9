"""Tests for the array-backed tree primitives."""

from __future__ import annotations

import pytest
from eth_utils import keccak

from merkledrop_core.merkle import MerkleError, compute_merkle_hash
from merkledrop_core.merkle.core import (
    get_multi_proof,
    get_proof,
    is_leaf_node,
    is_valid_merkle_tree,
    make_merkle_tree,
    parent_index,
    process_multi_proof,
    process_proof,
    render_merkle_tree,
    sibling_index,
)


def _leaves(n: int) -> list[bytes]:
    return sorted(keccak(str(i).encode()) for i in range(n))


# ── Layout ───────────────────────────────────────────────────────────


@pytest.mark.parametrize("n", [1, 2, 3, 4, 5, 7, 8, 13])
def test_tree_size_and_leaf_positions(n):
    leaves = _leaves(n)
    tree = make_merkle_tree(leaves)
    assert len(tree) == 2 * n - 1
    for k, leaf in enumerate(leaves):
        assert tree[len(tree) - 1 - k] == leaf
        assert is_leaf_node(tree, len(tree) - 1 - k)


def test_single_leaf_is_root():
    leaf = keccak(b"only")
    assert make_merkle_tree([leaf]) == [leaf]
    assert get_proof([leaf], 0) == []


def test_two_leaves():
    a, b = _leaves(2)
    tree = make_merkle_tree([a, b])
    assert tree[0] == compute_merkle_hash(a, b)
    assert get_proof(tree, 2) == [b]
    assert get_proof(tree, 1) == [a]


def test_odd_leaf_is_promoted_not_duplicated():
    """With three leaves the spare leaf hangs directly under the root."""
    a, b, c = _leaves(3)
    tree = make_merkle_tree([a, b, c])
    # a at 4, b at 3, c at 2
    assert tree[1] == compute_merkle_hash(b, a)
    assert tree[0] == compute_merkle_hash(tree[1], c)
    assert len(get_proof(tree, 2)) == 1
    assert len(get_proof(tree, 3)) == 2
    assert len(get_proof(tree, 4)) == 2


def test_make_merkle_tree_rejects_empty_and_bad_leaves():
    with pytest.raises(MerkleError):
        make_merkle_tree([])
    with pytest.raises(MerkleError):
        make_merkle_tree([b"short"])


def test_index_helpers():
    assert parent_index(1) == 0
    assert parent_index(2) == 0
    assert parent_index(5) == 2
    assert sibling_index(1) == 2
    assert sibling_index(2) == 1
    with pytest.raises(MerkleError):
        parent_index(0)
    with pytest.raises(MerkleError):
        sibling_index(0)


# ── Proofs ───────────────────────────────────────────────────────────


@pytest.mark.parametrize("n", [1, 2, 3, 6, 9])
def test_every_proof_reaches_root(n):
    tree = make_merkle_tree(_leaves(n))
    for i in range(n - 1, 2 * n - 1):
        assert process_proof(tree[i], get_proof(tree, i)) == tree[0]


def test_get_proof_rejects_internal_node():
    tree = make_merkle_tree(_leaves(4))
    with pytest.raises(MerkleError):
        get_proof(tree, 0)
    with pytest.raises(MerkleError):
        get_proof(tree, 99)


# ── Multiproofs ──────────────────────────────────────────────────────


def test_multi_proof_roundtrip():
    tree = make_merkle_tree(_leaves(6))
    leaves, proof, flags = get_multi_proof(tree, [10, 7, 5])
    assert leaves == [tree[10], tree[7], tree[5]]
    assert process_multi_proof(leaves, proof, flags) == tree[0]


def test_multi_proof_all_leaves_needs_no_proof_nodes():
    tree = make_merkle_tree(_leaves(4))
    leaves, proof, flags = get_multi_proof(tree, [3, 4, 5, 6])
    assert proof == []
    assert all(flags)
    assert process_multi_proof(leaves, proof, flags) == tree[0]


def test_multi_proof_empty_indices_returns_root():
    tree = make_merkle_tree(_leaves(3))
    leaves, proof, flags = get_multi_proof(tree, [])
    assert leaves == [] and flags == []
    assert process_multi_proof(leaves, proof, flags) == tree[0]


def test_multi_proof_rejects_duplicates():
    tree = make_merkle_tree(_leaves(4))
    with pytest.raises(MerkleError):
        get_multi_proof(tree, [3, 3])


def test_process_multi_proof_rejects_incompatible_input():
    tree = make_merkle_tree(_leaves(4))
    leaves, proof, flags = get_multi_proof(tree, [3, 6])
    with pytest.raises(MerkleError):
        process_multi_proof(leaves, proof + [tree[0]], flags)
    with pytest.raises(MerkleError):
        process_multi_proof([], [tree[0], tree[1]], [True])


# ── Validation and rendering ─────────────────────────────────────────


def test_is_valid_merkle_tree():
    tree = make_merkle_tree(_leaves(5))
    assert is_valid_merkle_tree(tree)
    assert not is_valid_merkle_tree([])
    # Even-length arrays cannot be complete binary trees
    assert not is_valid_merkle_tree(tree[:-1])

    tampered = list(tree)
    tampered[1] = keccak(b"forged")
    assert not is_valid_merkle_tree(tampered)


def test_render():
    tree = make_merkle_tree(_leaves(3))
    lines = render_merkle_tree(tree).splitlines()
    assert len(lines) == 5
    assert lines[0].startswith("0) 0x")
    assert lines[1].startswith("├─ 1) ")
    assert any(line.startswith("└─ 2) ") for line in lines)
