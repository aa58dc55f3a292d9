"""Array-backed complete binary Merkle tree.

The tree for ``n`` leaves is a list of ``2n - 1`` nodes. The root sits at
index 0 and the children of node ``i`` at ``2i + 1`` and ``2i + 2``. Leaves
occupy the last ``n`` slots in reverse order, so every internal node has
exactly two children and a level with an odd node count leaves its spare
node one level up instead of duplicating it.
"""

from __future__ import annotations

from collections.abc import Sequence

from merkledrop_core.merkle.hashing import HASH_SIZE, compute_merkle_hash, to_hex
from merkledrop_core.merkle.models import MerkleError


def left_child_index(i: int) -> int:
    return 2 * i + 1


def right_child_index(i: int) -> int:
    return 2 * i + 2


def parent_index(i: int) -> int:
    if i <= 0:
        raise MerkleError("prove", "root has no parent")
    return (i - 1) // 2


def sibling_index(i: int) -> int:
    if i <= 0:
        raise MerkleError("prove", "root has no siblings")
    return i + 1 if i % 2 else i - 1


def is_tree_node(tree: Sequence[bytes], i: int) -> bool:
    return 0 <= i < len(tree)


def is_internal_node(tree: Sequence[bytes], i: int) -> bool:
    return is_tree_node(tree, left_child_index(i))


def is_leaf_node(tree: Sequence[bytes], i: int) -> bool:
    return is_tree_node(tree, i) and not is_internal_node(tree, i)


def check_leaf_node(tree: Sequence[bytes], i: int) -> None:
    if not is_leaf_node(tree, i):
        raise MerkleError("prove", f"index {i} is not a leaf")


def make_merkle_tree(leaves: Sequence[bytes]) -> list[bytes]:
    """Build the node array bottom-up from already-sorted leaf hashes."""
    if not leaves:
        raise MerkleError("build", "expected non-zero number of leaves")
    for leaf in leaves:
        if len(leaf) != HASH_SIZE:
            raise MerkleError("build", f"leaf is not a {HASH_SIZE}-byte hash")

    size = 2 * len(leaves) - 1
    tree: list[bytes] = [b""] * size
    for i, leaf in enumerate(leaves):
        tree[size - 1 - i] = leaf
    for i in range(size - 1 - len(leaves), -1, -1):
        tree[i] = compute_merkle_hash(
            tree[left_child_index(i)], tree[right_child_index(i)]
        )
    return tree


def get_proof(tree: Sequence[bytes], index: int) -> list[bytes]:
    """Sibling hashes from leaf *index* up to (not including) the root."""
    check_leaf_node(tree, index)
    proof: list[bytes] = []
    while index > 0:
        proof.append(tree[sibling_index(index)])
        index = parent_index(index)
    return proof


def process_proof(leaf: bytes, proof: Sequence[bytes]) -> bytes:
    """Fold *proof* into *leaf* with the sorted-pair combine."""
    node = leaf
    for sibling in proof:
        node = compute_merkle_hash(node, sibling)
    return node


def get_multi_proof(
    tree: Sequence[bytes], indices: Sequence[int]
) -> tuple[list[bytes], list[bytes], list[bool]]:
    """Build a multiproof for several leaves.

    Returns ``(leaves, proof, proof_flags)`` where *leaves* is ordered by
    descending tree index, the order ``process_multi_proof`` consumes them.
    """
    for i in indices:
        check_leaf_node(tree, i)

    ordered = sorted(indices, reverse=True)
    if len(set(ordered)) != len(ordered):
        raise MerkleError("prove", "cannot prove duplicated index")

    stack = list(ordered)
    proof: list[bytes] = []
    proof_flags: list[bool] = []

    while stack and stack[0] > 0:
        j = stack.pop(0)
        s = sibling_index(j)
        p = parent_index(j)
        if stack and s == stack[0]:
            proof_flags.append(True)
            stack.pop(0)
        else:
            proof_flags.append(False)
            proof.append(tree[s])
        stack.append(p)

    if not indices:
        proof.append(tree[0])

    return [tree[i] for i in ordered], proof, proof_flags


def process_multi_proof(
    leaves: Sequence[bytes], proof: Sequence[bytes], proof_flags: Sequence[bool]
) -> bytes:
    """Recompute the root from a multiproof.

    Raises MerkleError if the three sequences cannot describe one tree.
    """
    if len(proof) < sum(1 for flag in proof_flags if not flag):
        raise MerkleError("verify", "invalid multiproof format")
    if len(leaves) + len(proof) != len(proof_flags) + 1:
        raise MerkleError("verify", "provided leaves and multiproof are not compatible")

    stack = list(leaves)
    remaining = list(proof)
    try:
        for flag in proof_flags:
            a = stack.pop(0)
            b = stack.pop(0) if flag else remaining.pop(0)
            stack.append(compute_merkle_hash(a, b))
    except IndexError as e:
        raise MerkleError("verify", "multiproof consumed more nodes than provided") from e

    if stack:
        return stack[-1]
    return remaining[0]


def is_valid_merkle_tree(tree: Sequence[bytes]) -> bool:
    """Check node sizes and that every internal node hashes its children."""
    for i, node in enumerate(tree):
        if len(node) != HASH_SIZE:
            return False
        left = left_child_index(i)
        right = right_child_index(i)
        if right >= len(tree):
            if left < len(tree):
                return False
        elif node != compute_merkle_hash(tree[left], tree[right]):
            return False
    return len(tree) > 0


def render_merkle_tree(tree: Sequence[bytes]) -> str:
    """Draw the node array as an indented ASCII tree."""
    if not tree:
        raise MerkleError("render", "expected non-zero number of nodes")

    stack: list[tuple[int, list[int]]] = [(0, [])]
    lines: list[str] = []

    while stack:
        i, path = stack.pop()
        prefix = "".join("   " if p == 0 else "│  " for p in path[:-1])
        if path:
            prefix += "└─ " if path[-1] == 0 else "├─ "
        lines.append(f"{prefix}{i}) {to_hex(tree[i])}")

        if right_child_index(i) < len(tree):
            stack.append((right_child_index(i), path + [0]))
            stack.append((left_child_index(i), path + [1]))

    return "\n".join(lines)
