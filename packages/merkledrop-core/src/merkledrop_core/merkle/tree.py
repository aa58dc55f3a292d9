"""Standard Merkle tree over typed leaf tuples.

Compatible with the ``standard-v1`` dumps written by ``@openzeppelin/merkle-tree``
and with proofs checked by OpenZeppelin's ``MerkleProof`` library.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from merkledrop_core.merkle.core import (
    get_multi_proof,
    get_proof,
    is_leaf_node,
    is_valid_merkle_tree,
    make_merkle_tree,
    process_multi_proof,
    process_proof,
    render_merkle_tree,
)
from merkledrop_core.merkle.encoding import compute_leaf_hash, parse_leaf_encoding
from merkledrop_core.merkle.hashing import from_hex, is_node_hex, to_hex
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

logger = logging.getLogger(__name__)

LeafRef = int | Sequence[Any]


def _jsonable(item: Any) -> Any:
    if isinstance(item, (bytes, bytearray)):
        return to_hex(bytes(item))
    if isinstance(item, int) and not isinstance(item, bool):
        return str(item)
    return item


def _is_index(leaf: object) -> bool:
    return isinstance(leaf, int) and not isinstance(leaf, bool)


class StandardMerkleTree:
    """Immutable Merkle tree over ABI-typed leaves.

    Build one with :meth:`of` or restore one with :meth:`load`. All query
    methods are read-only.
    """

    format: str = "standard-v1"
    algorithm: str = "keccak256"

    def __init__(
        self,
        tree: Sequence[bytes],
        values: Sequence[LeafEntry],
        leaf_encoding: Sequence[str],
    ) -> None:
        self._tree = tuple(tree)
        self._values = tuple(values)
        self.leaf_encoding = tuple(leaf_encoding)

        lookup: dict[bytes, list[int]] = {}
        for value_index, entry in enumerate(self._values):
            lookup.setdefault(self._tree[entry.tree_index], []).append(value_index)
        self._hash_lookup = {h: tuple(ix) for h, ix in lookup.items()}

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    @classmethod
    def of(
        cls, values: Sequence[Sequence[Any]], leaf_encoding: Sequence[str]
    ) -> StandardMerkleTree:
        """Build a tree from *values*, each a tuple matching *leaf_encoding*.

        Leaf hashes are sorted before the tree is laid out, so the root only
        depends on the set of values, not on their order. The position of
        each value in *values* remains its index for :meth:`get_proof`.
        """
        encoding = parse_leaf_encoding(leaf_encoding)
        if not values:
            raise EncodingError("expected at least one leaf", operation="build")

        hashed = [
            (compute_leaf_hash(encoding, value, i), i) for i, value in enumerate(values)
        ]
        hashed.sort(key=lambda pair: pair[0])

        tree = make_merkle_tree([leaf for leaf, _ in hashed])
        tree_index = [0] * len(values)
        for k, (_, value_index) in enumerate(hashed):
            tree_index[value_index] = len(tree) - 1 - k

        entries = [
            LeafEntry(value=tuple(value), tree_index=tree_index[i])
            for i, value in enumerate(values)
        ]
        logger.debug("Built %d-leaf tree with root %s", len(entries), to_hex(tree[0]))
        return cls(tree, entries, encoding)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def root(self) -> str:
        return to_hex(self._tree[0])

    @property
    def root_bytes(self) -> bytes:
        return self._tree[0]

    def __len__(self) -> int:
        return len(self._values)

    def entries(self) -> Iterator[tuple[int, tuple[Any, ...]]]:
        """Yield ``(index, value)`` pairs in insertion order."""
        for i, entry in enumerate(self._values):
            yield i, entry.value

    def at(self, index: int) -> tuple[Any, ...]:
        if not 0 <= index < len(self._values):
            raise LeafNotFound(f"index {index} is out of range for {len(self)} leaves")
        return self._values[index].value

    def leaf_hash(self, leaf: Sequence[Any]) -> str:
        return to_hex(compute_leaf_hash(self.leaf_encoding, leaf))

    def leaf_lookup(self, leaf: Sequence[Any]) -> int:
        """Return the index of the single value that encodes like *leaf*."""
        indices = self._hash_lookup.get(compute_leaf_hash(self.leaf_encoding, leaf), ())
        if not indices:
            raise LeafNotFound()
        if len(indices) > 1:
            raise AmbiguousLeaf(list(indices))
        return indices[0]

    def _resolve(self, leaf: LeafRef) -> LeafEntry:
        value_index = leaf if _is_index(leaf) else self.leaf_lookup(leaf)
        if not 0 <= value_index < len(self._values):
            raise LeafNotFound(
                f"index {value_index} is out of range for {len(self)} leaves"
            )
        return self._values[value_index]

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    def get_proof(self, leaf: LeafRef) -> list[str]:
        """Authentication path for *leaf*, given by index or by value."""
        entry = self._resolve(leaf)
        proof = get_proof(self._tree, entry.tree_index)
        if process_proof(self._tree[entry.tree_index], proof) != self._tree[0]:
            raise InvalidProof()
        return [to_hex(node) for node in proof]

    def get_multi_proof(self, leaves: Sequence[LeafRef]) -> MultiProof:
        """Multiproof for several leaves, given by index or by value."""
        entries = [self._resolve(leaf) for leaf in leaves]
        by_tree_index = {e.tree_index: e for e in entries}
        nodes, proof, flags = get_multi_proof(self._tree, [e.tree_index for e in entries])
        if process_multi_proof(nodes, proof, flags) != self._tree[0]:
            raise InvalidProof()

        ordered = sorted(by_tree_index, reverse=True)
        return MultiProof(
            leaves=tuple(by_tree_index[i].value for i in ordered),
            proof=tuple(to_hex(node) for node in proof),
            proof_flags=tuple(flags),
        )

    def verify(self, leaf: LeafRef, proof: Sequence[str]) -> bool:
        value = self._resolve(leaf).value if _is_index(leaf) else leaf
        return self.verify_proof(self.root, self.leaf_encoding, value, proof)

    def verify_multi(self, multiproof: MultiProof) -> bool:
        return self.verify_multi_proof(self.root, self.leaf_encoding, multiproof)

    @staticmethod
    def verify_proof(
        root: str | bytes,
        leaf_encoding: Sequence[str],
        leaf: Sequence[Any],
        proof: Sequence[str | bytes],
    ) -> bool:
        """Check *proof* for *leaf* against *root* without any stored tree.

        Returns False for any mismatch, including unparsable root or proof
        nodes. Raises EncodingError only if *leaf* or *leaf_encoding* is
        itself malformed.
        """
        leaf_hash = compute_leaf_hash(parse_leaf_encoding(leaf_encoding), leaf)
        try:
            expected = from_hex(root)
            nodes = [from_hex(node) for node in proof]
        except (TypeError, ValueError) as e:
            logger.debug("Rejecting malformed proof: %s", e)
            return False
        return process_proof(leaf_hash, nodes) == expected

    @staticmethod
    def verify_multi_proof(
        root: str | bytes, leaf_encoding: Sequence[str], multiproof: MultiProof
    ) -> bool:
        encoding = parse_leaf_encoding(leaf_encoding)
        leaves = [compute_leaf_hash(encoding, value) for value in multiproof.leaves]
        try:
            expected = from_hex(root)
            nodes = [from_hex(node) for node in multiproof.proof]
            computed = process_multi_proof(leaves, nodes, list(multiproof.proof_flags))
        except (TypeError, ValueError, MerkleError) as e:
            logger.debug("Rejecting malformed multiproof: %s", e)
            return False
        return computed == expected

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Recheck every node, recomputing leaf hashes from raw values."""
        if not is_valid_merkle_tree(self._tree):
            raise CorruptDump("merkle tree is invalid")
        for i, entry in enumerate(self._values):
            try:
                leaf = compute_leaf_hash(self.leaf_encoding, entry.value, i)
            except EncodingError as e:
                raise CorruptDump(str(e)) from e
            if leaf != self._tree[entry.tree_index]:
                raise CorruptDump(f"stored hash of leaf {i} does not match its value")

    def render(self) -> str:
        return render_merkle_tree(self._tree)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def dump(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "leafEncoding": list(self.leaf_encoding),
            "tree": [to_hex(node) for node in self._tree],
            "values": [
                {"value": [_jsonable(v) for v in e.value], "treeIndex": e.tree_index}
                for e in self._values
            ],
        }

    @classmethod
    def load(cls, data: Any) -> StandardMerkleTree:
        """Restore a tree from :meth:`dump` output, trusting stored hashes.

        The node array must be structurally sound (every internal node the
        hash of its children) but leaf hashes are not recomputed; call
        :meth:`validate` for that. Raises CorruptDump on any inconsistency.
        """
        if not isinstance(data, dict):
            raise CorruptDump("dump must be a JSON object")
        if data.get("format") != cls.format:
            raise CorruptDump(f"unknown format {data.get('format')!r}")

        try:
            encoding = parse_leaf_encoding(data.get("leafEncoding") or ())
        except EncodingError as e:
            raise CorruptDump(f"invalid leafEncoding: {e}") from e

        raw_tree = data.get("tree")
        if not isinstance(raw_tree, list) or not all(is_node_hex(n) for n in raw_tree):
            raise CorruptDump("tree must be a list of 32-byte hex strings")
        tree = [from_hex(n) for n in raw_tree]

        raw_values = data.get("values")
        if not isinstance(raw_values, list) or not raw_values:
            raise CorruptDump("values must be a non-empty list")
        if len(tree) != 2 * len(raw_values) - 1:
            raise CorruptDump(
                f"{len(raw_values)} values need {2 * len(raw_values) - 1} nodes, "
                f"found {len(tree)}"
            )

        entries: list[LeafEntry] = []
        seen: set[int] = set()
        for i, item in enumerate(raw_values):
            if not isinstance(item, dict):
                raise CorruptDump(f"value {i} is not an object")
            value = item.get("value")
            tree_index = item.get("treeIndex")
            if not isinstance(value, list) or len(value) != len(encoding):
                raise CorruptDump(f"value {i} does not match the leaf encoding")
            if not _is_index(tree_index) or not is_leaf_node(tree, tree_index):
                raise CorruptDump(f"value {i} has invalid treeIndex {tree_index!r}")
            if tree_index in seen:
                raise CorruptDump(f"treeIndex {tree_index} is used twice")
            seen.add(tree_index)
            entries.append(LeafEntry(value=tuple(value), tree_index=tree_index))

        if not is_valid_merkle_tree(tree):
            raise CorruptDump("root is not recomputable from stored nodes")

        logger.debug("Loaded %d-leaf tree with root %s", len(entries), to_hex(tree[0]))
        return cls(tree, entries, encoding)

    def to_json(self) -> str:
        return json.dumps(self.dump())

    @classmethod
    def from_json(cls, data: str | bytes) -> StandardMerkleTree:
        try:
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            obj = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptDump(f"not valid JSON: {e}") from e
        return cls.load(obj)

    def save(self, path: Path) -> None:
        """Write the dump to *path*, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json())

    @classmethod
    def load_file(cls, path: Path) -> StandardMerkleTree:
        return cls.from_json(path.read_bytes())
